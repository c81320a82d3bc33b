"""
Constants for the website monitoring system.

This module defines default values for all configurable parameters
of the monitoring system. These constants are used as fallback values
when neither command-line arguments nor environment variables are provided.
"""

# Environment variables prefix
ENV_PREFIX = "OPSIE_MONITOR_"

# HTTP check defaults
DEFAULT_METHOD = "POST"
DEFAULT_ACCEPT_HEADER = "application/json"
DEFAULT_TIMEOUT = 10

# Loop defaults
DEFAULT_INTERVAL = 10

# DNS check defaults
DEFAULT_DNS_SERVERS = ("cloudflare",)

# Monitor identity defaults
DEFAULT_MONITOR_ID_PREFIX = "website-monitor-"

# Webhook delivery
WEBHOOK_USER_AGENT = "Opsiebot/1.0"
WEBHOOK_SIGNATURE_HEADER = "Signature"
WEBHOOK_HTTP_VERB = "post"

# Logging configuration defaults
DEFAULT_LOGGING_TYPE = "prod"
DEFAULT_LOGGING_CONFIG_FILE = ""
