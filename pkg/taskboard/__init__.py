# Taskboard: per-user task tracking with a drag-and-drop status board
#
# Components:
#   schema.py    - Data model (Task, User, TaskStatus) and field validators
#   errors.py    - Failure taxonomy mapped to HTTP status codes
#   store.py     - SQLite persistence layer
#   resource.py  - Owner-scoped task CRUD
#   auth.py      - Accounts, password hashing, signed bearer tokens
#   config.py    - YAML + environment configuration
#   client.py    - HTTP session and task client
#   board.py     - Board state (tasks partitioned by status)
#   dragdrop.py  - Drag gesture → optimistic move + status update
