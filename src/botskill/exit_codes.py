"""Exit codes for BotSkill CLI commands.

Every upload rejection kind has its own code so scripts can tell them apart.
"""

# Success
SUCCESS = 0

# Errors
GENERAL_ERROR = 1
INVALID_ARGS = 2
HOME_NOT_INITIALIZED = 3
SKILL_NOT_FOUND = 4
SKILL_INVALID = 5
UNSUPPORTED_FORMAT = 6
MANIFEST_NOT_FOUND = 7
NAME_COLLISION = 8
VERSION_CONFLICT = 9
NOT_AUTHORIZED = 10
FETCH_FAILED = 11
UNKNOWN_CATEGORY = 12
PAYLOAD_TOO_LARGE = 13
MALFORMED_DOCUMENT = 14
