"""Centralized constants for sshbuddy to eliminate duplicate strings."""

# Host defaults
DEFAULT_SSH_PORT = "22"
FALLBACK_USER = "root"

# Source tags
SOURCE_MANUAL = "manual"
SOURCE_SSH_CONFIG = "ssh-config"
SOURCE_REMOTE = "remote"

# Tags derived from native SSH config entries
TAG_SSH_CONFIG = "ssh-config"
TAG_KEY_AUTH = "key-auth"
TAG_PROXY = "proxy"
TAG_FORWARDING = "forwarding"
FORWARDING_OPTIONS = ("localforward", "remoteforward", "dynamicforward")

# Remote inventory API
AUTH_PATH = "/authenticate"
HOSTS_PATH = "/hosts"
SESSION_COOKIE = "jwt"
RESPONSE_PREVIEW_LIMIT = 200

# Persisted files
CONFIG_DIR_NAME = "sshbuddy"
HOSTS_FILE = "hosts.yml"
CONFIG_FILE = "config.yml"
SESSION_FILE = "session.yml"
LOG_FILE = "sshbuddy.log"
LOG_DIR_NAME = "logs"

# Common field names
ALIAS = "alias"
