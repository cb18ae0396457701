import re

# Tenant scoped keys, stored as "{tenant_key}:{key}" by the settings store
FLAG_KEY = "{flag}_flag:{room_id}" # flag name, room id - json bool
HOOKS_KEY = "history_hooks:{room_id}" # room id - json {"hooks": [{"type", "id"}]}
ROOM_TOKEN_KEY = "history_token:{room_id}" # room id - json string token
CLIENT_INFO_KEY = "clientInfo" # installation record

# Global keys, not tenant scoped
TOKEN_KEY = "history_token:{token}" # token - json {"clientKey", "room": {"id", "name"}}

TENANT_PREFIX = "{tenant_key}:"

# Scan patterns used on uninstall, fill the tenant in with tenant_pattern()
TENANT_ROOM_TOKENS_PATTERN = "{tenant_key}:history_token:*"
TENANT_ALL_PATTERN = "{tenant_key}:*"
TOKEN_PATTERN = "history_token:*"

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def escape_glob(value: str) -> str:
    """Escape redis MATCH metacharacters so the value only matches itself."""
    return _GLOB_SPECIAL.sub(r"\\\1", value)


def tenant_pattern(pattern: str, tenant_key: str) -> str:
    return pattern.format(tenant_key=escape_glob(tenant_key))

# **Example layout for tenant `abc` and room `42`**
# - `abc:history_flag:42` = true
# - `abc:greeting_flag:42` = false
# - `abc:history_hooks:42` = {"hooks": [{"type": "greeting", "id": "7"}, {"type": "history", "id": "8"}]}
# - `abc:history_token:42` = "5f0c..."
# - `history_token:5f0c...` = {"clientKey": "abc", "room": {"id": 42, "name": "Lobby"}}
# - `abc:clientInfo` = {"clientKey": "abc", "oauthId": ..., "apiUrl": ...}
