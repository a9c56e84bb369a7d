"""
vpsdeploy Constants

Centralized constants for magic values, defaults, and configuration.
"""

# Default SSH Configuration
DEFAULT_SSH_PORT = 22
DEFAULT_SSH_KEY_PATH = "~/.ssh/id_rsa"
DEFAULT_SSH_USER = "deploy"
SSH_PASSWORD_ENV = "VPSDEPLOY_SSH_PASSWORD"

# SSH Timeout Configuration
SSH_CONNECTION_TIMEOUT = 10
SSH_HANDSHAKE_TIMEOUT = 15
DEPLOY_CONNECT_ATTEMPTS = 3
MONITOR_CONNECT_ATTEMPTS = 2
BACKOFF_BASE = 2

# File Transfer
UPLOAD_CHUNK_SIZE = 8192
UPLOAD_FILE_MODE = 0o644

# Remote Layout
DEFAULT_DEPLOY_PATH = "/opt/vpsdeploy-app"
BACKUP_SUFFIX = ".backup"
SYSTEMD_UNIT_DIR = "/etc/systemd/system"
REMOTE_TMP_DIR = "/tmp"
DEFAULT_LOG_PATH = "/var/log/vpsdeploy-app.log"

# Project Configuration
DEFAULT_PROJECT_NAME = "my-app"
DEFAULT_BUILD_MODE = "release"
BUILD_MODES = ("debug", "release")
CONFIG_FILE_NAMES = ("vpsdeploy.yml", ".vpsdeploy.yml")
HOME_CONFIG_FILE_NAME = ".vpsdeploy.yml"

# Monitoring
DEFAULT_MONITOR_INTERVAL = 10
DEFAULT_HEALTH_TIMEOUT = 5
DEFAULT_LOG_LINES = 50

# Interactive dashboard
INPUT_POLL_SECONDS = 0.1
RENDER_FRAMES_PER_SECOND = 10
DEFAULT_DRAIN_PER_FRAME = 1
MAX_PANE_LOG_LINES = 200

# Log Configuration
LOG_DIR_NAME = ".vpsdeploy"
LOG_DATE_FORMAT = "%Y-%m-%d"
