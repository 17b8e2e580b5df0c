# human-readable service label used in error messages
SERVICE_LABEL = "End User Messaging SMS"

# default region if neither the environment nor the boto session provides one
AWS_REGION_US_EAST_1 = "us-east-1"

# environment variable values interpreted as true
TRUE_STRINGS = ("1", "true", "True")

# log level constants
LOG_LEVELS = ("trace", "debug", "info", "warn", "error", "warning")
LOG_TRACE = "trace"
TRACE_LOG_LEVELS = [LOG_TRACE]

# default timeout of create/update/delete operations (in seconds)
DEFAULT_OPERATION_TIMEOUT = 30 * 60

# maximum number of connections per boto client pool
MAX_POOL_CONNECTIONS = 10
