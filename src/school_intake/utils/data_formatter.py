"""Formatting helpers for rendering submission data in PDFs and emails"""

import re
from datetime import date
from typing import Any, Mapping, Optional, Sequence, Union

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
CAMEL_CASE_RE = re.compile(r"([a-z])([A-Z])")

INTERNAL_PREFIX = "_"
CONSENT_PREFIX = "consent_"


def humanize_key(key: str) -> str:
    """
    Turn a raw field name into a label.

    "user_name" -> "User Name", "emailAddress" -> "Email Address",
    "firma-name" -> "Firma Name"
    """
    label = key.replace("_", " ").replace("-", " ")
    label = CAMEL_CASE_RE.sub(r"\1 \2", label)
    return " ".join(word[:1].upper() + word[1:] for word in label.split(" "))


def is_iso_date(value: str) -> bool:
    return bool(ISO_DATE_RE.match(value))


def format_date(value: str) -> str:
    """2000-01-31 -> 31.01.2000; unparseable input is returned unchanged"""
    try:
        return date.fromisoformat(value).strftime("%d.%m.%Y")
    except ValueError:
        return value


def _is_file_list(value: Sequence[Any]) -> bool:
    return (
        len(value) > 0
        and isinstance(value[0], Mapping)
        and ("content" in value[0] or "name" in value[0])
    )


def format_value(value: Any) -> str:
    """Render a loosely-typed survey answer as readable text"""
    if value is None or value == "":
        return "-"

    if isinstance(value, bool):
        return "Yes" if value else "No"

    if isinstance(value, (list, tuple)):
        if _is_file_list(value):
            return ", ".join(
                str(item.get("name") or "File") if isinstance(item, Mapping) else str(item)
                for item in value
            )
        return ", ".join(format_value(item) for item in value)

    if isinstance(value, Mapping):
        return ", ".join(
            f"{humanize_key(str(k))}: {format_value(v)}" for k, v in value.items()
        )

    if isinstance(value, str) and is_iso_date(value):
        return format_date(value)

    return str(value)


def filter_fields(
    data: Mapping[str, Any],
    include_fields: Union[str, Sequence[str]] = "all",
    exclude_fields: Sequence[str] = (),
) -> dict[str, Any]:
    """Apply include/exclude lists and drop internal and consent fields"""
    if include_fields == "all":
        filtered = dict(data)
    else:
        filtered = {k: v for k, v in data.items() if k in include_fields}

    return {
        k: v
        for k, v in filtered.items()
        if k not in exclude_fields
        and not k.startswith(INTERNAL_PREFIX)
        and not k.startswith(CONSENT_PREFIX)
    }


def sort_fields_by_order(
    data: Mapping[str, Any], field_types: Optional[Mapping[str, Any]] = None
) -> dict[str, Any]:
    """
    Order fields the way the survey declared them.

    The survey front-end stores its field order in the `_fieldTypes` metadata.
    Without it, fields are sorted alphabetically.
    """
    if isinstance(field_types, Mapping):
        ordered = {k: data[k] for k in field_types if k in data}
        for k, v in data.items():
            ordered.setdefault(k, v)
        return ordered
    return dict(sorted(data.items()))


def prepare_for_pdf(
    data: Mapping[str, Any], pdf_config: Mapping[str, Any]
) -> dict[str, Any]:
    """Filter and order the raw survey data for the PDF data table"""
    filtered = filter_fields(
        data,
        pdf_config.get("include_fields", "all"),
        pdf_config.get("exclude_fields") or (),
    )
    return sort_fields_by_order(filtered, data.get("_fieldTypes"))
