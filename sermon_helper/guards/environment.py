"""Deployment-tier gate for AI calls.

Evaluated before anything else in the pipeline: it needs no I/O and no
tenant configuration can override it.
"""

from sermon_helper.core.errors import ConfigurationBlocked

AI_ALLOWED_TIERS = frozenset({"development", "dev", "local", "staging"})


def is_ai_allowed_in_environment(deploy_env: str) -> bool:
    return deploy_env.strip().lower() in AI_ALLOWED_TIERS


def assert_environment_allows_ai(deploy_env: str) -> None:
    if not is_ai_allowed_in_environment(deploy_env):
        raise ConfigurationBlocked(
            message="AI features are disabled in production.",
            code="ai_disabled_in_environment",
        )
