"""Settings for ReWolf Trans, layered with prepper.

Layers, lowest priority first: ``ReWolfTrans`` YAML files found by prepper's
discovery rules, a ``.env`` file in the working directory, then the process
environment. Only ``REWOLF_*`` keys are read. Every key has a default.
"""

from __future__ import annotations

import codecs
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterator, Mapping, Tuple

from dotenv import dotenv_values
from prepper import (
    Field,
    IoError,
    SchemaError,
    SchemaModel,
    ValidationError,
    model_validator,
)
from prepper.config import ConfigInstance
from prepper.loaders import _parse_file, _path_to_source, discover_file_paths
from prepper.merge import merge_layer
from prepper.provenance import ProvenanceRecorder

from .constants import DEFAULT_READ_ENCODING, DEFAULT_WRITE_ENCODING
from .errors import ConfigurationError
from .structures import CodecOptions

APP_NAME = "ReWolfTrans"
KEY_PREFIX = "REWOLF_"
ENCODING_KEYS = ("REWOLF_READ_ENCODING", "REWOLF_WRITE_ENCODING")

# (values, provenance source, layer name)
Layer = Tuple[Mapping[str, Any], str, str]


class RewolfConfig(SchemaModel):
    """Codepages and verbosity used when no command line flag overrides them."""

    REWOLF_READ_ENCODING: str = Field(
        default=DEFAULT_READ_ENCODING,
        description="Codepage used to decode game archives.",
    )
    REWOLF_WRITE_ENCODING: str = Field(
        default=DEFAULT_WRITE_ENCODING,
        description="Codepage used to encode translated strings.",
    )
    REWOLF_VERBOSE: bool = Field(default=False)

    @model_validator(mode="before")
    def _normalise_encodings(data: Any) -> Any:
        if isinstance(data, dict):
            for key in ENCODING_KEYS:
                value = data.get(key)
                if isinstance(value, str):
                    data[key] = value.strip().lower().replace("_", "-")
        return data


@lru_cache(maxsize=1)
def _load_config_instance(app_dir: Path | None = None) -> ConfigInstance:
    base_dir = app_dir or Path.cwd()
    provenance = ProvenanceRecorder()
    combined: dict[str, Any] = {}
    try:
        for values, source, layer in _iter_layers(base_dir):
            merge_layer(combined, values, provenance=provenance, source=source, layer=layer)
        model = RewolfConfig.validate(combined, provenance=provenance)
    except IoError as exc:
        raise ConfigurationError(f"Cannot read configuration: {exc}") from exc
    except SchemaError as exc:
        raise ConfigurationError(f"Invalid configuration schema: {exc}") from exc
    except ValidationError as exc:
        raise ConfigurationError(_describe_issues(exc.to_dict())) from exc

    unknown = [
        f"{key} names an unknown codec: {getattr(model, key)!r}."
        for key in ENCODING_KEYS
        if not _is_codec(getattr(model, key))
    ]
    if unknown:
        raise ConfigurationError(_bullets(unknown))

    return ConfigInstance(
        model=model,
        provenance=provenance,
        env_prefix=None,
        schema_cls=RewolfConfig,
    )


def _iter_layers(app_dir: Path) -> Iterator[Layer]:
    for path, label in discover_file_paths(APP_NAME, "yaml", app_dir=app_dir, extra_paths=None):
        parsed = _parse_file(path, "yaml")
        if not isinstance(parsed, Mapping):
            raise IoError(f"{path}: the top level must be a mapping.")
        yield parsed, _path_to_source(label, "yaml", path), "file"

    dotenv_path = app_dir / ".env"
    if dotenv_path.is_file():
        for key, value in _rewolf_keys(dotenv_values(dotenv_path)):
            yield {key: value}, f"env:.env:{key}", "env"

    for key, value in _rewolf_keys(os.environ):
        yield {key: value}, f"env:process:{key}", "env"


def _rewolf_keys(values: Mapping[str, str | None]) -> Iterator[Tuple[str, str]]:
    known = RewolfConfig.__field_infos__.keys()
    for key in sorted(values):
        value = values[key]
        if key.startswith(KEY_PREFIX) and key in known and value is not None:
            yield key, value


def _is_codec(name: str) -> bool:
    try:
        codecs.lookup(name)
    except LookupError:
        return False
    return True


def _bullets(lines: list[str]) -> str:
    return "Invalid configuration:\n" + "\n".join(f"- {line}" for line in lines)


def _describe_issues(issues: list[dict[str, Any]]) -> str:
    lines = []
    for issue in issues:
        path = issue.get("path") or ()
        if isinstance(path, (list, tuple)):
            key = ".".join(str(part) for part in path if part)
        else:
            key = str(path)
        text = issue.get("message") or issue.get("msg") or "invalid value"
        source = f" [{issue['source']}]" if issue.get("source") else ""
        lines.append(f"{key}: {text}{source}" if key else f"{text}{source}")
    return _bullets(lines)


def get_config(app_dir: Path | None = None) -> ConfigInstance:
    return _load_config_instance(app_dir=app_dir)


def get_settings(app_dir: Path | None = None) -> RewolfConfig:
    return get_config(app_dir=app_dir).model()


def resolve_codec_options(
    read_encoding: str | None = None,
    write_encoding: str | None = None,
    *,
    settings: RewolfConfig | None = None,
) -> CodecOptions:
    """Combine explicit codepages with configured ones; explicit values win."""

    settings = settings or get_settings()
    options = CodecOptions(
        read_encoding=read_encoding or settings.REWOLF_READ_ENCODING,
        write_encoding=write_encoding or settings.REWOLF_WRITE_ENCODING,
    )
    for encoding in (options.read_encoding, options.write_encoding):
        if not _is_codec(encoding):
            raise ConfigurationError(f"Unknown codec: {encoding!r}")
    return options
