# Vulture whitelist for legitimate API definitions that appear unused
# This file tells vulture to ignore these symbols which are part of our public API

# Config constants - legitimate configuration values
MAX_QUERY_LENGTH
MAX_RESULTS_LIMIT
DEFAULT_SERVER_PORT

# Exception classes and utilities - part of public API
ErrorCollector.add_error
ErrorCollector.set_context
ErrorResult.to_dict

# Model fields read by MCP clients
display_name
is_local
total_matches
partial

# Library surface used when embedding the engine
MappingShardSource
HttpShardSource.aclose
ShardStore.cached_shard
QuerySession.submit
StoreStats.to_dict

# Protocol definitions - type system components
ShardSource
fetch  # Protocol method
describe  # Protocol method
