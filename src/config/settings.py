# src/config/settings.py - v3
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for project layout, manifest, revisioning,
deploy targets and logging. Nested values such as ENVIRONMENTS accept
either JSON or ENVIRONMENTS__STAGING__TARGET style variables.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from polyship.deploy.models import Environment, EnvironmentTarget


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # === Project layout ===
    project_root: Path = Path(".")
    source_dir: str = "app"
    tmp_dir: str = ".tmp"
    dist_dir: str = "dist"
    deploy_dir: str = "deploy"
    vendor_dir: str = "bower_components"

    # === Cache manifest ===
    cache_id: str = ""
    cache_disabled: bool = False
    cache_manifest_name: str = "cache-config.json"
    precache_patterns: str = "elements/**/*.*,scripts/**/*.*,styles/**/*.*"
    precache_extra: str = (
        "index.html,./,bower_components/webcomponentsjs/webcomponents-lite.min.js"
    )

    # === Change detection ===
    change_cache_persist: bool = False
    change_cache_dir: str = "change-cache"

    # === Revisioning ===
    revision_extensions: str = ".css,.js"
    revision_exclude: str = "bower_components/*,sw-toolbox/*,elements/bootstrap/*"
    revision_scan_extensions: str = ".html,.css,.js,.json"
    revision_token_length: int = 8
    revision_manifest_name: str = "rev-manifest.json"

    # === Post-build fix-ups ===
    sw_toolbox_glob: str = "elements/bootstrap/*.js"
    sw_toolbox_old_path: str = "../sw-toolbox/sw-toolbox.js"
    sw_toolbox_new_path: str = "sw-toolbox/sw-toolbox.js"
    clean_dist_patterns: str = "test/**,**/*.map,**/.DS_Store"

    # === Lint ===
    lint_fail_on_error: bool = True

    # === Deploy ===
    deploy_backend: Literal["local", "s3"] = "local"
    deploy_s3_region: str = ""
    deploy_s3_endpoint_url: str = ""
    environments: dict[str, EnvironmentTarget] = Field(default_factory=dict)
    promote_source: str = "staging"
    promote_target: str = "production"

    # === Preview ===
    preview_host: str = "127.0.0.1"
    preview_port: int = 5000

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("revision_token_length")
    @classmethod
    def validate_token_length(cls, v: int) -> int:  # noqa: N805
        if not 4 <= v <= 32:
            raise ValueError("revision_token_length must be between 4 and 32")
        return v

    @field_validator("cache_manifest_name", "revision_manifest_name")
    @classmethod
    def validate_manifest_name(cls, v: str) -> str:  # noqa: N805
        if not v.strip() or "/" in v:
            raise ValueError("manifest names must be plain, non-empty file names")
        return v.strip()

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Cross-field checks on environments and the promote pair."""
        errors: list[str] = []
        real = {e.value for e in Environment if e.is_real}

        unknown = sorted(set(self.environments) - real)
        if unknown:
            errors.append(f"ENVIRONMENTS has unknown keys: {', '.join(unknown)}")

        for label, value in (
            ("PROMOTE_SOURCE", self.promote_source),
            ("PROMOTE_TARGET", self.promote_target),
        ):
            if value not in real:
                errors.append(f"{label} must be one of {sorted(real)}, got {value!r}")

        if self.promote_source == self.promote_target:
            errors.append("PROMOTE_SOURCE and PROMOTE_TARGET must differ")

        # A publish prunes everything under its location and owns the marker there
        locations = sorted(
            (name, env.target, env.prefix.strip("/"))
            for name, env in self.environments.items()
        )
        for i, (name, target, prefix) in enumerate(locations):
            for other, other_target, other_prefix in locations[i + 1:]:
                if target == other_target and _nested(prefix, other_prefix):
                    errors.append(
                        f"ENVIRONMENTS {name} and {other} overlap on {target!r} "
                        f"(prefixes {prefix!r} and {other_prefix!r})"
                    )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Paths ---

    @property
    def root_path(self) -> Path:
        return Path(self.project_root).expanduser().resolve()

    @property
    def source_path(self) -> Path:
        return self.root_path / self.source_dir

    @property
    def tmp_path(self) -> Path:
        return self.root_path / self.tmp_dir

    @property
    def dist_path(self) -> Path:
        return self.root_path / self.dist_dir

    @property
    def deploy_path(self) -> Path:
        return self.root_path / self.deploy_dir

    @property
    def vendor_path(self) -> Path:
        return self.root_path / self.vendor_dir

    @property
    def resolved_cache_id(self) -> str:
        """CACHE_ID, or the project directory name when unset."""
        return self.cache_id or self.root_path.name

    # --- Helpers ---

    @property
    def precache_patterns_list(self) -> list[str]:
        return _split(self.precache_patterns)

    @property
    def precache_extra_list(self) -> list[str]:
        return _split(self.precache_extra)

    @property
    def revision_extensions_list(self) -> list[str]:
        return [_as_suffix(e) for e in _split(self.revision_extensions)]

    @property
    def revision_exclude_list(self) -> list[str]:
        return _split(self.revision_exclude)

    @property
    def revision_scan_extensions_list(self) -> list[str]:
        return [_as_suffix(e) for e in _split(self.revision_scan_extensions)]

    @property
    def clean_dist_patterns_list(self) -> list[str]:
        return _split(self.clean_dist_patterns)


def _split(value: str) -> list[str]:
    """Parse a comma-separated setting."""
    return [v.strip() for v in value.split(",") if v.strip()]


def _as_suffix(ext: str) -> str:
    ext = ext.lower()
    return ext if ext.startswith(".") else f".{ext}"


def _nested(a: str, b: str) -> bool:
    """True if one key prefix equals or contains the other."""
    return a == b or not a or not b or b.startswith(a + "/") or a.startswith(b + "/")


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
