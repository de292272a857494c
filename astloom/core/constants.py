"""Shared constants for astloom.

Values used by more than one module (settings defaults, CLI, pipeline)
live here to keep them consistent.
"""

# =============================================================================
# Translation
# =============================================================================

# Worker pool size used when concurrency is not configured
DEFAULT_TRANSLATE_CONCURRENCY = 8

# Upper bound accepted from TRANSLATE_CONCURRENCY / settings
MAX_TRANSLATE_CONCURRENCY = 32

# Per-node LLM attempts (1 = no retry)
DEFAULT_MAX_RETRY_PER_NODE = 1

# =============================================================================
# Pipeline
# =============================================================================

# Attempts before DefaultAgent switches from retry to rollback
DEFAULT_AGENT_MAX_RETRY = 1

# File name pattern of persisted target trees, one per translate attempt
TARGET_AST_ARTIFACT_PATTERN = "target_ast_{version}.json"

# Checkpoint written by PipelineState.save() when no path is given
STATE_CHECKPOINT_FILE = "pipeline_state.json"

# =============================================================================
# Configuration
# =============================================================================

DEFAULT_CONFIG_PATH = "config/astloom.yaml"
CONFIG_PATH_ENV = "ASTLOOM_CONFIG"
