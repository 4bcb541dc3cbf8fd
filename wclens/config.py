"""
Config system - Layered project configuration with per-package overrides.

Supplies the settings every other component reads:
- diagnostic severities per rule (global and per package)
- include/exclude glob patterns
- the type-field selector used for value-kind inference
- an optional tag-name transform (global and per package)
- extra manifest sources declared per library
"""

from typing import Any, Callable, Dict, List, Optional, Union
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
import importlib.util
import json
import logging
import os

from dotenv import dotenv_values

from .faults import ConfigFault, ConfigInvalidFault, InvalidSeverityFault, Severity

logger = logging.getLogger("wclens.config")


SEVERITY_LEVELS = ("error", "warning", "info", "hint", "off")

DEFAULT_SEVERITIES: Dict[str, str] = {
    "invalidBoolean": "error",
    "invalidNumber": "error",
    "invalidAttributeValue": "error",
    "deprecatedAttribute": "warning",
    "deprecatedElement": "warning",
    "duplicateAttribute": "error",
    "unknownElement": "hint",
    "unknownAttribute": "hint",
}

DEFAULT_TYPE_SRC = "parsedType"

# Searched in order of preference; Python files may carry callables.
CONFIG_FILE_NAMES = [
    "wc.config.py",
    "wc.config.yaml",
    "wc.config.yml",
    "wc.config.json",
]

ENV_PREFIX = "WCLENS_"

TagFormatter = Union[Callable[[str], str], str]

# camelCase keys of the original config format -> dataclass field names
_KEY_ALIASES = {
    "manifestSrc": "manifest_src",
    "typeSrc": "type_src",
    "tagFormatter": "tag_formatter",
    "diagnosticSeverity": "diagnostic_severity",
}


def _snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _normalize_key(key: str) -> str:
    return _KEY_ALIASES.get(key, key)


def _glob_match(candidate: str, pattern: str) -> bool:
    """fnmatch with '**/' allowed to match zero directories."""
    if fnmatch(candidate, pattern):
        return True
    return "**/" in pattern and fnmatch(candidate, pattern.replace("**/", ""))


def coerce_severities(raw: Any, *, scope: str = "project") -> Dict[str, str]:
    """
    Validate a severity map.

    Unknown severity values are coerced to ``error`` with a warning,
    never rejected.

    Args:
        raw: Mapping of rule id -> severity (camelCase or snake_case ids)
        scope: Label used in log messages

    Returns:
        Mapping of camelCase rule id -> valid severity
    """
    if not raw:
        return {}
    if not isinstance(raw, dict):
        fault = ConfigInvalidFault("diagnosticSeverity", f"expected a mapping in {scope} config")
        logger.warning(str(fault))
        return {}

    severities: Dict[str, str] = {}
    for rule, value in raw.items():
        rule_id = _snake_to_camel(str(rule))
        level = str(value).lower() if isinstance(value, str) else value
        # YAML 1.1 reads a bare `off` as false
        if level is False:
            level = "off"
        if level == "information":
            level = "info"
        if level not in SEVERITY_LEVELS:
            fault = InvalidSeverityFault(rule_id, value)
            logger.warning(f"{fault} ({scope})")
            level = "error"
        severities[rule_id] = level
    return severities


@dataclass
class LibraryConfig:
    """
    Settings block that can be overridden per package.

    Only explicitly set keys participate in resolution; unset keys fall
    through to the project-wide block and then to built-in defaults.
    """

    manifest_src: Optional[str] = None
    type_src: Optional[str] = None
    tag_formatter: Optional[TagFormatter] = None
    diagnostic_severity: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, scope: str = "library") -> "LibraryConfig":
        data = {_normalize_key(k): v for k, v in (data or {}).items()}
        return cls(
            manifest_src=data.get("manifest_src"),
            type_src=data.get("type_src"),
            tag_formatter=data.get("tag_formatter"),
            diagnostic_severity=coerce_severities(data.get("diagnostic_severity"), scope=scope),
        )

    def apply_formatter(self, tag: str) -> Optional[str]:
        """Apply this block's tag formatter, or None when it has none."""
        formatter = self.tag_formatter
        if formatter is None:
            return None
        if callable(formatter):
            return formatter(tag)
        if isinstance(formatter, str) and "{tag}" in formatter:
            return formatter.replace("{tag}", tag)
        return None


@dataclass
class ProjectConfig(LibraryConfig):
    """
    Merged project configuration.

    The global block plus named per-package blocks under ``libraries``.
    """

    root: Path = field(default_factory=Path.cwd)
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    libraries: Dict[str, LibraryConfig] = field(default_factory=dict)
    debug: bool = False
    source_path: Optional[Path] = None

    @classmethod
    def from_dict(
        cls,
        data: Optional[Dict[str, Any]] = None,
        *,
        root: Union[str, Path, None] = None,
        source_path: Optional[Path] = None,
    ) -> "ProjectConfig":
        """
        Build a validated configuration from raw (file-shaped) data.

        Args:
            data: Raw configuration mapping
            root: Project root used for relative paths
            source_path: File the data came from, if any

        Returns:
            ProjectConfig instance
        """
        data = {_normalize_key(k): v for k, v in (data or {}).items()}

        libraries: Dict[str, LibraryConfig] = {}
        raw_libraries = data.get("libraries") or {}
        if isinstance(raw_libraries, dict):
            for name, block in raw_libraries.items():
                if isinstance(block, dict):
                    libraries[name] = LibraryConfig.from_dict(block, scope=f"library '{name}'")
                else:
                    logger.warning(str(ConfigInvalidFault(f"libraries.{name}", "expected a mapping")))
        else:
            logger.warning(str(ConfigInvalidFault("libraries", "expected a mapping")))

        return cls(
            manifest_src=data.get("manifest_src"),
            type_src=data.get("type_src"),
            tag_formatter=data.get("tag_formatter"),
            diagnostic_severity=coerce_severities(data.get("diagnostic_severity")),
            root=Path(root).resolve() if root else Path.cwd(),
            include=cls._pattern_list(data.get("include"), "include"),
            exclude=cls._pattern_list(data.get("exclude"), "exclude"),
            libraries=libraries,
            debug=bool(data.get("debug", False)),
            source_path=source_path,
        )

    @staticmethod
    def _pattern_list(value: Any, key: str) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        logger.warning(str(ConfigInvalidFault(key, "must be an array of strings")))
        return []

    # ── Resolution ───────────────────────────────────────────────────

    def library(self, package: Optional[str]) -> Optional[LibraryConfig]:
        if not package:
            return None
        return self.libraries.get(package)

    def severity_for(self, rule: str, package: Optional[str] = None) -> str:
        """
        Resolve the severity of a rule.

        Precedence: per-package override, project-wide override,
        built-in default.
        """
        lib = self.library(package)
        if lib and rule in lib.diagnostic_severity:
            return lib.diagnostic_severity[rule]
        if rule in self.diagnostic_severity:
            return self.diagnostic_severity[rule]
        return DEFAULT_SEVERITIES.get(rule, "error")

    def type_src_for(self, package: Optional[str] = None) -> str:
        lib = self.library(package)
        if lib and lib.type_src:
            return lib.type_src
        return self.type_src or DEFAULT_TYPE_SRC

    def format_tag(self, tag: str, package: Optional[str] = None) -> str:
        """Apply the per-package tag formatter, else the global one."""
        lib = self.library(package)
        formatted = lib.apply_formatter(tag) if lib else None
        if formatted is None:
            formatted = self.apply_formatter(tag)
        return formatted or tag

    def should_include(self, file_path: Union[str, Path]) -> bool:
        """
        Check a file against the include/exclude patterns.

        Patterns are tried against the absolute path, the root-relative
        path and every trailing suffix of it, so ``src/**/*.html`` also
        matches files below nested package folders.
        """
        path = Path(file_path)
        abs_norm = path.resolve().as_posix() if path.is_absolute() else (self.root / path).resolve().as_posix()
        try:
            rel_norm = Path(abs_norm).relative_to(self.root).as_posix()
        except ValueError:
            rel_norm = path.as_posix()

        segments = rel_norm.split("/")
        candidates = [abs_norm, rel_norm] + ["/".join(segments[i:]) for i in range(len(segments))]

        def matches(patterns: List[str]) -> bool:
            return any(_glob_match(c, p) for p in patterns for c in candidates)

        if self.include and not matches(self.include):
            logger.debug(f"Excluded {rel_norm}: no include pattern matched")
            return False
        if self.exclude and matches(self.exclude):
            logger.debug(f"Excluded {rel_norm}: exclude pattern matched")
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "manifestSrc": self.manifest_src,
            "typeSrc": self.type_src_for(),
            "diagnosticSeverity": {**DEFAULT_SEVERITIES, **self.diagnostic_severity},
            "include": list(self.include),
            "exclude": list(self.exclude),
            "libraries": {
                name: {
                    "manifestSrc": lib.manifest_src,
                    "typeSrc": lib.type_src,
                    "diagnosticSeverity": dict(lib.diagnostic_severity),
                }
                for name, lib in self.libraries.items()
            },
            "debug": self.debug,
        }


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config file > defaults
    """

    def __init__(self, root: Union[str, Path] = ".", env_prefix: str = ENV_PREFIX):
        self.root = Path(root).resolve()
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}
        self.source_path: Optional[Path] = None

    @classmethod
    def load(
        cls,
        root: Union[str, Path] = ".",
        path: Union[str, Path, None] = None,
        *,
        env_prefix: str = ENV_PREFIX,
        env_file: Union[str, Path, None] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> ProjectConfig:
        """
        Load the project configuration.

        Merge order (later overrides earlier):
        1. Config file (explicit path, else first of CONFIG_FILE_NAMES in root)
        2. .env file (``env_file`` or ``<root>/.env``), prefixed keys only
        3. Environment variables (WCLENS_* prefix, ``__`` for nesting)
        4. Manual overrides

        Never raises: unreadable files are logged and skipped.

        Args:
            root: Project root
            path: Explicit config file path
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)

        Returns:
            Validated ProjectConfig
        """
        loader = cls(root, env_prefix=env_prefix)

        config_file = loader.find_config_file(path)
        if config_file is not None:
            try:
                loader._load_file(config_file)
                loader.source_path = config_file
            except Exception as exc:
                fault = ConfigFault(
                    "CONFIG_LOAD_FAILED",
                    f"Failed to load configuration from {config_file}: {exc}",
                    severity=Severity.WARN,
                    metadata={"path": str(config_file)},
                )
                logger.warning(str(fault))

        loader._load_env_file(Path(env_file) if env_file else loader.root / ".env")
        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        config = ProjectConfig.from_dict(
            loader.config_data,
            root=loader.root,
            source_path=loader.source_path,
        )
        if config.debug:
            logging.getLogger("wclens").setLevel(logging.DEBUG)
        return config

    def find_config_file(self, path: Union[str, Path, None] = None) -> Optional[Path]:
        """Resolve the config file: explicit path first, else the first known name in root."""
        if path is not None:
            explicit = Path(path)
            if not explicit.is_absolute():
                explicit = self.root / explicit
            if explicit.exists():
                return explicit
            logger.warning(str(ConfigInvalidFault("path", f"configuration file not found: {explicit}")))
            return None

        for name in CONFIG_FILE_NAMES:
            candidate = self.root / name
            if candidate.exists():
                logger.info(f"Found config file: {candidate}")
                return candidate
        logger.debug(f"No config file found in {self.root}")
        return None

    def _load_file(self, path: Path) -> None:
        if path.suffix == ".py":
            self._load_python_config(path)
        elif path.suffix == ".json":
            self._load_json_file(path)
        elif path.suffix in (".yaml", ".yml"):
            self._load_yaml_file(path)
        else:
            raise ValueError(
                f"Unsupported configuration file format: {path.suffix}. "
                "Supported formats: .py, .yaml, .yml, .json"
            )

    def _load_python_config(self, path: Path) -> None:
        """
        Load config from a Python file (wc.config.py).

        Expects a module-level ``config`` (or ``CONFIG``) dict. Python
        configs may hold callables, e.g. a ``tagFormatter`` function.
        """
        spec = importlib.util.spec_from_file_location("wclens_user_config", path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load configuration from {path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        data = getattr(module, "config", None) or getattr(module, "CONFIG", None)
        if not isinstance(data, dict):
            raise ValueError(f"{path} does not define a 'config' dict")
        self._merge_dict(self.config_data, data)

    def _load_json_file(self, path: Path) -> None:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if data:
            self._merge_dict(self.config_data, data)

    def _load_yaml_file(self, path: Path) -> None:
        import yaml
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data:
            self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: Path) -> None:
        """Load prefixed keys from a .env file."""
        if not path.exists():
            return
        for key, value in dotenv_values(path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self) -> None:
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str) -> None:
        """Convert WCLENS_DIAGNOSTIC_SEVERITY__UNKNOWN_ELEMENT to a nested dict."""
        key = key[len(self.env_prefix):]
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict) -> None:
        """Deep merge source into target."""
        for key, value in source.items():
            key = _normalize_key(key)
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value
