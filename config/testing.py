import os

from config.config import Config

SECRET_KEY = "test-secret"

DB_CONFIG = {
    **Config.db_config(),
    "database": os.getenv("DB_NAME", "hr_workflow_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = False
AUTO_SEED_DB = False

LOG_LEVEL = "WARNING"
LOG_FORMAT = Config.LOG_FORMAT
MAX_LIST_LIMIT = 100
