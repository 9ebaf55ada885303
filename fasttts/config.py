"""Bulk configuration loading and synthesis request resolution.

Responsibilities:
- Parse bulk documents (JSON first, YAML as the fallback) into `BulkConfig`.
- Merge CLI overrides, item fields, document defaults, and built-in fallbacks
  field by field into fully-resolved `SynthesisRequest` values.
- Validate ranges, enums, and output-path/encoding compatibility before any
  network call.

Key types:
- `ConfigLoader`: static construction helpers for `BulkConfig`.
- `ConfigResolver`: precedence merge for single and bulk runs.
"""

from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from .errors import ConfigurationError
from .models.datatypes import (
    AudioEncoding,
    BulkConfig,
    Gender,
    PartialRequest,
    PlannedItem,
    Provider,
    SynthesisRequest,
)
from .parsing import (
    normalize_optional_string,
    parse_optional_int,
    parse_optional_number,
    parse_permissive_boolean,
    parse_string_list,
)
from .provider_factory import parse_provider


FALLBACK_PROVIDER = Provider.GOOGLE
FALLBACK_LANGUAGE = "en-US"
FALLBACK_SAMPLE_RATE = 24000
FALLBACK_ENCODING = AudioEncoding.LINEAR16
FALLBACK_RATE = 1.0
FALLBACK_PITCH = 0.0
FALLBACK_VOLUME_DB = 0.0

RATE_RANGE = (0.25, 4.0)
PITCH_RANGE = (-20.0, 20.0)
VOLUME_RANGE = (-96.0, 16.0)

BULK_PROVIDERS = frozenset({Provider.GOOGLE})

# Document keys accepted for each `PartialRequest` field, camelCase first.
_FIELD_KEYS: dict[str, tuple[str, ...]] = {
    "provider": ("provider",),
    "text": ("text",),
    "is_ssml": ("ssml", "isSsml", "is_ssml"),
    "language": ("language", "languageCode", "language_code"),
    "voice": ("voice",),
    "gender": ("gender",),
    "rate": ("rate", "speakingRate", "speaking_rate"),
    "pitch": ("pitch",),
    "sample_rate": ("sampleRate", "sample_rate", "sampleRateHertz"),
    "encoding": ("encoding", "audioEncoding"),
    "volume_db": ("volumeGainDb", "volume_gain_db", "volume_db", "volume"),
    "effects_profile": ("effectsProfileId", "effects_profile_id", "effects_profile"),
    "output": ("output",),
    "output_dir": ("outputDir", "output_dir"),
}
_KEY_TO_FIELD = {key: name for name, keys in _FIELD_KEYS.items() for key in keys}
_Fail = Callable[..., ConfigurationError]


class ConfigLoader:
    """Factory methods for creating `BulkConfig` from documents."""

    @staticmethod
    def from_path(path: Path) -> BulkConfig:
        """Read and parse a bulk document from disk.

        Raises:
            ConfigurationError: If the file is unreadable or the document shape
                is invalid. Item-level field errors are kept on the config.
        """

        try:
            raw_text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigurationError(
                f"Failed to read bulk config `{path}`: {exc}",
                field="config",
            ) from exc
        return ConfigLoader.from_text(raw_text, source_label=str(path))

    @staticmethod
    def from_text(raw_text: str, *, source_label: str = "<document>") -> BulkConfig:
        """Parse bulk document text into a `BulkConfig`."""

        payload = ConfigLoader._parse_document(raw_text, source_label)
        if not isinstance(payload, Mapping):
            raise ConfigurationError(
                f"Bulk config `{source_label}` must contain a top-level mapping/object.",
                field="config",
            )

        raw_defaults = payload.get("defaults")
        if raw_defaults is None:
            defaults = PartialRequest()
        elif isinstance(raw_defaults, Mapping):
            defaults = ConfigLoader._parse_partial(raw_defaults, section="defaults")
        else:
            raise ConfigurationError("`defaults` must be a mapping/object.", field="defaults")

        raw_items = payload.get("items")
        if not isinstance(raw_items, list):
            raise ConfigurationError(
                f"Bulk config `{source_label}` must contain an `items` list.",
                field="items",
            )
        if not raw_items:
            raise ConfigurationError(
                f"Bulk config `{source_label}` has an empty `items` list.",
                field="items",
            )

        items: list[PartialRequest | ConfigurationError] = []
        for index, raw_item in enumerate(raw_items, start=1):
            if not isinstance(raw_item, Mapping):
                items.append(
                    ConfigurationError("item must be a mapping/object.", item_index=index)
                )
                continue
            try:
                items.append(ConfigLoader._parse_partial(raw_item, section="item", item_index=index))
            except ConfigurationError as exc:
                items.append(exc)
        return BulkConfig(defaults=defaults, items=tuple(items))

    @staticmethod
    def _parse_document(raw_text: str, source_label: str) -> Any:
        """Parse as JSON, falling back to YAML when JSON parsing fails."""

        try:
            return json.loads(raw_text)
        except json.JSONDecodeError:
            pass
        try:
            return yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(
                f"Bulk config `{source_label}` is neither valid JSON nor valid YAML: {exc}",
                field="config",
            ) from exc

    @staticmethod
    def _parse_partial(
        payload: Mapping[str, Any],
        *,
        section: str,
        item_index: int | None = None,
    ) -> PartialRequest:
        """Convert one document block into a `PartialRequest`."""

        values: dict[str, Any] = {}
        for key, raw_value in payload.items():
            field_name = _KEY_TO_FIELD.get(str(key))
            if field_name is None:
                raise ConfigurationError(
                    f"unknown {section} key `{key}`.",
                    field=str(key),
                    item_index=item_index,
                )
            if section == "defaults" and field_name in {"text", "output"}:
                raise ConfigurationError(
                    f"`{key}` is only allowed on items, not in `defaults`.",
                    field=field_name,
                )
            try:
                values[field_name] = _parse_field(field_name, raw_value)
            except ValueError as exc:
                raise ConfigurationError(
                    str(exc), field=field_name, item_index=item_index
                ) from exc
        return PartialRequest(**values)


def _parse_field(field_name: str, value: Any) -> Any:
    """Parse one raw document value for a `PartialRequest` field."""

    if field_name == "is_ssml":
        if value is None:
            return None
        parsed = parse_permissive_boolean(value)
        if parsed is None:
            raise ValueError(f"`ssml` must be a boolean, got `{value}`.")
        return parsed
    if field_name in {"rate", "pitch", "volume_db"}:
        return parse_optional_number(value, field_name)
    if field_name == "sample_rate":
        return parse_optional_int(value, field_name)
    if field_name == "effects_profile":
        return parse_string_list(value, field_name)
    if field_name == "text":
        return None if value is None else str(value)
    return normalize_optional_string(value)


class ConfigResolver:
    """Resolve partial settings into `SynthesisRequest` values.

    Precedence for each field is:
    CLI overrides > item fields > document defaults > built-in fallbacks.
    """

    def __init__(self, overrides: PartialRequest | None = None) -> None:
        self._overrides = overrides if overrides is not None else PartialRequest()

    def resolve_single(self, text: str, output: str) -> SynthesisRequest:
        """Resolve a single CLI invocation.

        Raises:
            ConfigurationError: If any merged field is missing or invalid.
        """

        item = PartialRequest(text=text, output=output)
        return self._resolve(self._merge(item, PartialRequest()), item_index=None)

    def plan_bulk(self, config: BulkConfig) -> list[PlannedItem]:
        """Resolve every bulk item, isolating item-level errors."""

        planned: list[PlannedItem] = []
        for index, item in enumerate(config.items, start=1):
            if isinstance(item, ConfigurationError):
                planned.append(PlannedItem(index=index, error=item))
                continue
            try:
                request = self._resolve(self._merge(item, config.defaults), item_index=index)
                if request.provider not in BULK_PROVIDERS:
                    raise ConfigurationError(
                        f"bulk mode supports only the google provider, got `{request.provider.value}`.",
                        field="provider",
                        item_index=index,
                    )
            except ConfigurationError as exc:
                planned.append(PlannedItem(index=index, error=exc))
                continue
            planned.append(PlannedItem(index=index, request=request))
        return planned

    def _merge(self, item: PartialRequest, defaults: PartialRequest) -> PartialRequest:
        """Merge layers field by field; the first non-`None` value wins."""

        merged: dict[str, Any] = {}
        for record_field in fields(PartialRequest):
            name = record_field.name
            for layer in (self._overrides, item, defaults):
                value = getattr(layer, name)
                if value is not None:
                    merged[name] = value
                    break
        return PartialRequest(**merged)

    def _resolve(self, merged: PartialRequest, *, item_index: int | None) -> SynthesisRequest:
        """Apply fallbacks and validation to a merged partial request."""

        def fail(detail: str, field_name: str, hint: str | None = None) -> ConfigurationError:
            return ConfigurationError(detail, field=field_name, item_index=item_index, hint=hint)

        try:
            provider = parse_provider(merged.provider) if merged.provider else FALLBACK_PROVIDER
        except ConfigurationError as exc:
            raise fail(exc.detail, "provider") from exc

        text = merged.text
        if text is None or not text.strip():
            raise fail("missing required field `text`.", "text")

        encoding = _parse_encoding(merged.encoding, fail)
        gender = _parse_gender(merged.gender, fail)

        rate = _in_range(merged.rate, FALLBACK_RATE, RATE_RANGE, "rate", fail)
        pitch = _in_range(merged.pitch, FALLBACK_PITCH, PITCH_RANGE, "pitch", fail)
        volume_db = _in_range(merged.volume_db, FALLBACK_VOLUME_DB, VOLUME_RANGE, "volume_db", fail)

        sample_rate = merged.sample_rate if merged.sample_rate is not None else FALLBACK_SAMPLE_RATE
        if sample_rate <= 0:
            raise fail(f"`sample_rate` must be positive, got {sample_rate}.", "sample_rate")

        output_path = _resolve_output_path(merged, encoding, item_index, fail)

        return SynthesisRequest(
            provider=provider,
            text=text,
            is_ssml=bool(merged.is_ssml),
            language=merged.language or FALLBACK_LANGUAGE,
            voice=merged.voice,
            gender=gender,
            rate=rate,
            pitch=pitch,
            sample_rate=sample_rate,
            encoding=encoding,
            volume_db=volume_db,
            effects_profile=merged.effects_profile or (),
            output_path=output_path,
        )


def _parse_encoding(value: str | None, fail: _Fail) -> AudioEncoding:
    """Parse an encoding name, defaulting to LINEAR16."""

    if value is None:
        return FALLBACK_ENCODING
    try:
        return AudioEncoding(value.strip().upper())
    except ValueError as exc:
        supported = ", ".join(encoding.value for encoding in AudioEncoding)
        raise fail(f"unsupported encoding `{value}`; use one of {supported}.", "encoding") from exc


def _parse_gender(value: str | None, fail: _Fail) -> Gender | None:
    """Parse an optional SSML gender, case-insensitively."""

    if value is None:
        return None
    try:
        return Gender(value.strip().upper())
    except ValueError as exc:
        raise fail(f"unsupported gender `{value}`; use MALE, FEMALE, or NEUTRAL.", "gender") from exc


def _in_range(
    value: float | None,
    fallback: float,
    bounds: tuple[float, float],
    field_name: str,
    fail: _Fail,
) -> float:
    """Apply the fallback, then enforce the inclusive range."""

    resolved = fallback if value is None else value
    low, high = bounds
    if not low <= resolved <= high:
        raise fail(f"`{field_name}` must be between {low:g} and {high:g}, got {resolved:g}.", field_name)
    return resolved


def _resolve_output_path(
    merged: PartialRequest,
    encoding: AudioEncoding,
    item_index: int | None,
    fail: _Fail,
) -> Path:
    """Join relative outputs to `output_dir`, or derive `item_<n>.<ext>`."""

    extension = encoding.file_extension
    output_dir = Path(merged.output_dir) if merged.output_dir else None
    if merged.output:
        output_path = Path(merged.output).expanduser()
        if not output_path.is_absolute() and output_dir is not None:
            output_path = output_dir / output_path
    elif output_dir is not None and item_index is not None:
        output_path = output_dir / f"item_{item_index}.{extension}"
    else:
        raise fail(
            "missing required field `output` and no `outputDir` to derive it from.",
            "output",
            "Set `output` on the item or `outputDir` in defaults.",
        )

    actual = output_path.suffix.lower().lstrip(".")
    if not actual:
        raise fail(
            f"output `{output_path}` must have .{extension} extension for encoding {encoding.value}.",
            "output",
        )
    if actual != extension:
        raise fail(
            f"output extension .{actual} does not match encoding {encoding.value} "
            f"(expected .{extension}).",
            "output",
        )
    return output_path
