"""
Constants for the key-item store client.
"""

# Wire protocol
SERVICE_NAME = "dynamodb"
TARGET_PREFIX = "DynamoDB_20120810"
CONTENT_TYPE = "application/x-amz-json-1.0"
SIGNING_ALGORITHM = "AWS4-HMAC-SHA256"
DEFAULT_REGION = "us-east-1"

# Operations sent as x-amz-target
OP_PUT_ITEM = "PutItem"
OP_GET_ITEM = "GetItem"
OP_UPDATE_ITEM = "UpdateItem"
OP_DELETE_ITEM = "DeleteItem"
OP_QUERY = "Query"
OP_DESCRIBE_TABLE = "DescribeTable"
OP_CREATE_TABLE = "CreateTable"
OP_UPDATE_TABLE = "UpdateTable"
OP_DESCRIBE_TTL = "DescribeTimeToLive"
OP_UPDATE_TTL = "UpdateTimeToLive"

# Service error codes (suffix of the "__type" field)
ERR_RESOURCE_NOT_FOUND = "ResourceNotFoundException"
ERR_RESOURCE_IN_USE = "ResourceInUseException"
ERR_TABLE_ALREADY_EXISTS = "TableAlreadyExistsException"
ERR_CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"
ERR_VALIDATION = "ValidationException"

# Default table names
DEFAULT_IDENTITY_TABLE = "wr-api-suite-identity"
DEFAULT_QUESTION_SETS_TABLE = "wr-api-suite-question-sets"
DEFAULT_QUESTION_SETS_SNIPPET_GSI = "questionSetsBySnippet"
DEFAULT_OPENAI_CACHE_TABLE = "wr-api-suite-openai-cache"

# Default TTLs (in seconds)
DEFAULT_OPENAI_CACHE_TTL = 6 * 60 * 60  # 6 hours

# Attribute names used by the application tables
ATTR_PK = "pk"
ATTR_SK = "sk"
ATTR_SNIPPET_INDEX_PK = "snippetIndexPk"
ATTR_UPDATED_AT = "updatedAt"
ATTR_CACHE_KEY = "cacheKey"
ATTR_EXPIRES_AT = "expiresAt"

# Control-plane polling
DEFAULT_POLL_INTERVAL = 1.0  # seconds between describe calls
DEFAULT_POLL_MAX_ATTEMPTS = 25

BILLING_PAY_PER_REQUEST = "PAY_PER_REQUEST"
