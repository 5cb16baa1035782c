"""Centralized configuration for the verifier engine."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from loguru import logger

from .hooks.models import HookEvent, HookRule, HookSettings, Namespace


class ConfigError(ValueError):
    """Raised when the project configuration is missing or invalid."""


class Config:
    """
    Engine configuration with environment variable overrides.

    Values are read once at import; tests reload the module to change them.
    """

    @staticmethod
    def _parse_positive_int(name: str, raw: str) -> int:
        """Parse a positive integer environment value."""
        try:
            value = int(raw)
        except ValueError as e:
            raise ValueError(f"Invalid {name} environment variable: {e}")
        if value <= 0:
            raise ValueError(f"Invalid {name} environment variable: must be > 0, got {value}")
        return value

    # ========================================================================
    # Storage
    # ========================================================================
    HOME_DIR: str = os.getenv("VERIFIER_HOME", ".verifier")
    CONFIG_PATH: str = os.getenv(
        "VERIFIER_CONFIG_PATH", str(Path(HOME_DIR) / "config.yaml")
    )
    SESSIONS_DIR: str = str(Path(HOME_DIR) / "sessions")
    METRICS_DIR: str = str(Path(HOME_DIR) / "metrics")

    # ========================================================================
    # Logging
    # ========================================================================
    LOG_LEVEL: str = os.getenv("VERIFIER_LOG_LEVEL", "INFO")
    LOG_FILE: Optional[str] = os.getenv("VERIFIER_LOG_FILE") or None

    # ========================================================================
    # Hooks
    # ========================================================================
    HOOK_DEFAULT_TIMEOUT_MS: int = _parse_positive_int.__func__(
        "HOOK_DEFAULT_TIMEOUT_MS", os.getenv("HOOK_DEFAULT_TIMEOUT_MS", "10000")
    )

    VALID_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

    @classmethod
    def validate(cls) -> bool:
        """
        Validate configuration consistency.

        Returns:
            True if validation passes

        Raises:
            ValueError: If validation fails
        """
        errors = []

        if cls.LOG_LEVEL.upper() not in cls.VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(cls.VALID_LOG_LEVELS)}, got {cls.LOG_LEVEL}")

        if cls.HOOK_DEFAULT_TIMEOUT_MS <= 0:
            errors.append(f"HOOK_DEFAULT_TIMEOUT_MS must be > 0, got {cls.HOOK_DEFAULT_TIMEOUT_MS}")

        if not cls.HOME_DIR:
            errors.append("HOME_DIR must not be empty")

        if errors:
            raise ValueError(f"Config validation failed: {'; '.join(errors)}")

        return True


# ============================================================================
# Project configuration (config.yaml)
# ============================================================================


@dataclass
class ModelSettings:
    primary: str = ""
    fallback: Optional[str] = None


@dataclass
class BudgetSettings:
    """Token and cost ceilings. None means unbounded."""

    daily_tokens: Optional[int] = None
    per_commit_tokens: Optional[int] = None
    monthly_cost: Optional[float] = None


@dataclass
class VerifierConfig:
    """Parsed project configuration."""

    models: ModelSettings = field(default_factory=ModelSettings)
    budgets: BudgetSettings = field(default_factory=BudgetSettings)
    hooks: HookSettings = field(default_factory=HookSettings)

    def to_dict(self) -> dict[str, Any]:
        models: dict[str, Any] = {"primary": self.models.primary}
        if self.models.fallback:
            models["fallback"] = self.models.fallback
        budgets = {
            key: value
            for key, value in (
                ("daily_tokens", self.budgets.daily_tokens),
                ("per_commit_tokens", self.budgets.per_commit_tokens),
                ("monthly_cost", self.budgets.monthly_cost),
            )
            if value is not None
        }
        return {"models": models, "budgets": budgets, "hooks": self.hooks.to_dict()}


def _non_negative(value: Any, name: str, errors: list[str], number_type=int) -> Any:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        errors.append(f"{name} must be a number, got {value!r}")
        return None
    if number_type is int and not isinstance(value, int):
        errors.append(f"{name} must be an integer, got {value!r}")
        return None
    if value < 0:
        errors.append(f"{name} must be >= 0, got {value}")
        return None
    return number_type(value)


def _parse_rule(
    event: HookEvent,
    matcher: Any,
    hook: Any,
    where: str,
    errors: list[str],
) -> Optional[HookRule]:
    if not isinstance(hook, dict):
        errors.append(f"{where}: hook entry must be a mapping")
        return None
    hook_type = hook.get("type", "command")
    if hook_type != "command":
        logger.warning(f"[config] Ignoring {where}: unsupported hook type '{hook_type}'")
        return None
    command = hook.get("command")
    if not isinstance(command, str) or not command.strip():
        errors.append(f"{where}: command must be a non-empty string")
        return None
    timeout = _non_negative(hook.get("timeout"), f"{where}.timeout", errors)
    return HookRule(
        event=event,
        command=command,
        matcher="" if matcher is None else str(matcher),
        timeout_ms=timeout,
    )


def parse_hooks(data: Any, errors: list[str]) -> HookSettings:
    """
    Parse the hooks section.

    Accepts matcher groups ({matcher, hooks: [...]}) and flat rules
    ({matcher, command, timeout}). Unknown namespaces and events are
    logged and skipped.
    """
    settings = HookSettings()
    if not data:
        return settings
    if not isinstance(data, dict):
        errors.append("hooks must be a mapping of namespace -> event -> rules")
        return settings

    for ns_key, events in data.items():
        try:
            namespace = Namespace(ns_key)
        except ValueError:
            logger.warning(f"[config] Ignoring hooks for unknown namespace '{ns_key}'")
            continue
        if not events:
            continue
        if not isinstance(events, dict):
            errors.append(f"hooks.{ns_key} must be a mapping of event -> rules")
            continue

        for event_key, groups in events.items():
            event = HookEvent.parse(event_key)
            if event is None:
                logger.warning(f"[config] Ignoring hooks for unknown event '{event_key}'")
                continue
            if not groups:
                continue
            if not isinstance(groups, list):
                errors.append(f"hooks.{ns_key}.{event_key} must be a list")
                continue

            rules: list[HookRule] = []
            for i, group in enumerate(groups):
                where = f"hooks.{ns_key}.{event_key}[{i}]"
                if not isinstance(group, dict):
                    errors.append(f"{where} must be a mapping")
                    continue
                matcher = group.get("matcher")
                if "hooks" in group:
                    entries = group["hooks"] or []
                    if not isinstance(entries, list):
                        errors.append(f"{where}.hooks must be a list")
                        continue
                    for j, hook in enumerate(entries):
                        rule = _parse_rule(event, matcher, hook, f"{where}.hooks[{j}]", errors)
                        if rule:
                            rules.append(rule)
                else:
                    rule = _parse_rule(event, matcher, group, where, errors)
                    if rule:
                        rules.append(rule)

            if rules:
                settings.rules[(namespace, event)] = tuple(rules)

    return settings


def parse_config(data: Any) -> VerifierConfig:
    """
    Build a VerifierConfig from a decoded YAML document.

    Raises:
        ConfigError: If any value is invalid (all problems are listed)
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Invalid configuration: top level must be a mapping")

    errors: list[str] = []

    models_data = data.get("models") or {}
    if not isinstance(models_data, dict):
        errors.append("models must be a mapping")
        models_data = {}
    models = ModelSettings(
        primary=str(models_data.get("primary") or ""),
        fallback=models_data.get("fallback"),
    )

    budgets_data = data.get("budgets") or {}
    if not isinstance(budgets_data, dict):
        errors.append("budgets must be a mapping")
        budgets_data = {}
    budgets = BudgetSettings(
        daily_tokens=_non_negative(budgets_data.get("daily_tokens"), "budgets.daily_tokens", errors),
        per_commit_tokens=_non_negative(
            budgets_data.get("per_commit_tokens"), "budgets.per_commit_tokens", errors
        ),
        monthly_cost=_non_negative(
            budgets_data.get("monthly_cost"), "budgets.monthly_cost", errors, float
        ),
    )

    hooks = parse_hooks(data.get("hooks"), errors)

    if errors:
        raise ConfigError(f"Invalid configuration: {'; '.join(errors)}")

    return VerifierConfig(models=models, budgets=budgets, hooks=hooks)


def load_config(config_path: Optional[str] = None) -> VerifierConfig:
    """
    Load project configuration from YAML.

    Args:
        config_path: Path to config.yaml. If None, uses Config.CONFIG_PATH.

    Returns:
        Parsed VerifierConfig

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    path = Path(config_path or Config.CONFIG_PATH)
    if not path.exists():
        raise ConfigError(f"Verifier not initialized: config not found at {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"[config] Failed to parse {path}: {e}")
        raise ConfigError(f"Invalid configuration: {e}") from e
    except OSError as e:
        logger.error(f"[config] Failed to read {path}: {e}")
        raise ConfigError(f"Failed to read configuration: {e}") from e

    config = parse_config(data)
    rule_count = sum(len(rules) for rules in config.hooks.rules.values())
    logger.debug(f"[config] Loaded {path} with {rule_count} hook rules")
    return config


def save_config(config: VerifierConfig, config_path: Optional[str] = None) -> Path:
    """Write configuration back to YAML and return the path written."""
    path = Path(config_path or Config.CONFIG_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)
    logger.info(f"[config] Configuration saved to {path}")
    return path
