STATE_DIR_NAME = ".task_tracker"
CONFIG_FILE = "config.yaml"
STORE_FILE = "store.yaml"
LOCK_FILE = "store.lock"

# Key the task collection is persisted under.
TASKS_KEY = "tasks"

DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVEL_ENV_VAR = "TASK_TRACKER_LOG_LEVEL"

DEFAULT_NOTIFICATION_HISTORY = 50

