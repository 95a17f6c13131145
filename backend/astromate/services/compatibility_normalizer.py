"""Decode assistant compatibility analyses into a uniform report.

The assistant returns JSON shaped like:

    {
      "Strengths": {"Aspects": [{"Communication": "Effective", "Description": "..."}]},
      "Weaknesses": {"Aspects": [...]},
      "Tips": [{"Tip": "Compromise", "Description": "..."}]
    }

Each aspect object carries a free-form key whose *name* is the aspect title;
its value carries no information and is ignored.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

DESCRIPTION_KEY = "Description"
UNKNOWN_TITLE = "Unknown"


class DecodeError(ValueError):
    """Base exception for compatibility report decoding failures."""

    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path


class MissingField(DecodeError):
    def __init__(self, path: str):
        super().__init__(path, f"{path} is missing")


class TypeMismatch(DecodeError):
    def __init__(self, path: str, expected: str):
        super().__init__(path, f"{path} must be {expected}")
        self.expected = expected


class MalformedTopLevel(DecodeError):
    def __init__(self, reason: str):
        super().__init__("", reason)


class AmbiguousAspect(DecodeError):
    """Raised when an aspect object has more than one candidate title key."""

    def __init__(self, path: str, keys: list[str]):
        super().__init__(path, f"{path} has more than one title key: {', '.join(keys)}")
        self.keys = keys


@dataclass(frozen=True)
class Aspect:
    title: str
    description: str


@dataclass(frozen=True)
class Section:
    aspects: tuple[Aspect, ...]


@dataclass(frozen=True)
class Tip:
    tip: str
    description: str


@dataclass(frozen=True)
class CompatibilityReport:
    strengths: Section
    weaknesses: Section
    tips: tuple[Tip, ...]


def _require(obj: dict[str, Any], key: str, path: str) -> Any:
    if key not in obj:
        raise MissingField(path)
    return obj[key]


def _require_object(value: Any, path: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise TypeMismatch(path, "an object")
    return value


def _require_array(value: Any, path: str) -> list[Any]:
    if not isinstance(value, list):
        raise TypeMismatch(path, "an array")
    return value


def _require_string(value: Any, path: str) -> str:
    if not isinstance(value, str):
        raise TypeMismatch(path, "a string")
    return value


def _decode_aspect(raw: Any, path: str, strict: bool) -> Aspect:
    """
    Two-pass aspect decode.

    Pass 1 reads `Description`; pass 2 scans the remaining keys for the title.
    An object without a title key falls back to `Unknown` and keeps its text.
    """
    obj = _require_object(raw, path)

    description: str | None = None
    if DESCRIPTION_KEY in obj:
        description = _require_string(obj[DESCRIPTION_KEY], f"{path}.{DESCRIPTION_KEY}")

    candidates = [key for key in obj if key != DESCRIPTION_KEY]
    if not candidates:
        return Aspect(title=UNKNOWN_TITLE, description=description or "")

    if len(candidates) > 1:
        if strict:
            raise AmbiguousAspect(path, sorted(candidates))
        candidates = sorted(candidates)

    if description is None:
        raise MissingField(f"{path}.{DESCRIPTION_KEY}")

    return Aspect(title=candidates[0], description=description)


def _decode_section(raw: dict[str, Any], key: str, strict: bool) -> Section:
    section = _require_object(_require(raw, key, key), key)
    aspects_path = f"{key}.Aspects"
    items = _require_array(_require(section, "Aspects", aspects_path), aspects_path)

    return Section(
        aspects=tuple(
            _decode_aspect(item, f"{aspects_path}[{index}]", strict)
            for index, item in enumerate(items)
        )
    )


def _decode_tip(raw: Any, path: str) -> Tip:
    obj = _require_object(raw, path)
    tip = _require_string(_require(obj, "Tip", f"{path}.Tip"), f"{path}.Tip")
    description = _require_string(
        _require(obj, DESCRIPTION_KEY, f"{path}.{DESCRIPTION_KEY}"),
        f"{path}.{DESCRIPTION_KEY}",
    )
    return Tip(tip=tip, description=description)


def normalize(raw: Any, *, strict: bool = True) -> CompatibilityReport:
    """
    Build a `CompatibilityReport` from one decoded assistant payload.

    Decoding is all-or-nothing: any structural problem raises a `DecodeError`
    carrying the JSON path that failed. With `strict=False` an aspect that
    offers several title keys takes the lexicographically smallest one.
    """
    if not isinstance(raw, dict):
        raise MalformedTopLevel("Compatibility report must be a JSON object")

    strengths = _decode_section(raw, "Strengths", strict)
    weaknesses = _decode_section(raw, "Weaknesses", strict)
    tips = _require_array(_require(raw, "Tips", "Tips"), "Tips")

    return CompatibilityReport(
        strengths=strengths,
        weaknesses=weaknesses,
        tips=tuple(_decode_tip(item, f"Tips[{index}]") for index, item in enumerate(tips)),
    )


def _strip_code_fence(text: str) -> str | None:
    # Only a fence wrapping the whole text counts; backticks inside strings stay.
    stripped = text.strip()
    if not (stripped.startswith("```") and stripped.endswith("```") and len(stripped) >= 6):
        return None
    body = stripped[3:-3]
    if body.startswith("json"):
        body = body[4:]
    return body


def decode_report_text(text: str, *, strict: bool = True) -> CompatibilityReport:
    """Parse the assistant's message content and normalize it."""
    try:
        payload = json.loads(text)
    except ValueError as exc:
        # Models occasionally wrap JSON in Markdown fences even in JSON mode.
        unfenced = _strip_code_fence(text)
        if unfenced is None:
            raise MalformedTopLevel("Compatibility report is not valid JSON") from exc
        try:
            payload = json.loads(unfenced)
        except ValueError as fenced_exc:
            raise MalformedTopLevel("Compatibility report is not valid JSON") from fenced_exc

    return normalize(payload, strict=strict)


def report_to_dict(report: CompatibilityReport) -> dict[str, Any]:
    def _section(section: Section) -> dict[str, Any]:
        return {
            "aspects": [
                {"title": aspect.title, "description": aspect.description}
                for aspect in section.aspects
            ]
        }

    return {
        "strengths": _section(report.strengths),
        "weaknesses": _section(report.weaknesses),
        "tips": [{"tip": tip.tip, "description": tip.description} for tip in report.tips],
    }
