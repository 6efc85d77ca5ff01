"""Library-wide constants.

Column lengths and session keys shared by the audit models,
the session listener and the CLI.
"""

# String field lengths
MAX_ENTITY_SET_NAME_LENGTH = 255
MAX_ENTITY_TYPE_NAME_LENGTH = 255
MAX_ENTITY_KEY_LENGTH = 255
MAX_PROPERTY_NAME_LENGTH = 255
MAX_AUTHOR_LENGTH = 255
MAX_STATE_LENGTH = 32

# Author used when neither the caller nor the context provides one
DEFAULT_AUTHOR = "system"

# Separator for composite primary keys in AuditEntry.entity_key
ENTITY_KEY_SEPARATOR = ","

# Keys stored in Session.info by the listener integration
SESSION_AUDIT_KEY = "audittrail.audit"
SESSION_RETAINED_KEY = "audittrail.retained"
SESSION_SUPPRESS_KEY = "audittrail.suppress"

# Request header consulted by AuditContextMiddleware
AUTHOR_HEADER = "X-Audit-Author"

# CLI listing defaults
DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 500
