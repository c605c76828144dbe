"""
Shared module to hold constant values for the library
"""

# Delimiter used for nested dict keys in config and status lookups
NESTED_DICT_DELIM = "."

# Separator between namespace and name in a work item key
KEY_DELIM = "/"

# Status field holding the ordered dependent object prefixes
STATUS_OBJECT_PREFIXES = "objectPrefixes"

# Label stamped onto every generated dependent so that objects belonging to one
# custom resource can be listed together
OWNER_NAME_LABEL = "topoctl.io/owner-name"

# Label identifying the replica group a dependent belongs to
OBJECT_PREFIX_LABEL = "topoctl.io/object-prefix"

# Core kinds generated as dependents
CONFIG_MAP_KIND = "ConfigMap"
SERVICE_KIND = "Service"
STATEFUL_SET_KIND = "StatefulSet"
