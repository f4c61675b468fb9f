"""
Configuration resolver - three-tier merge of app configuration.

Tiers, later wins:
1. Schema defaults (``ConfigField.default_value``)
2. Defaults (manifest ``defaultValues`` or an installation's stored config)
3. Overrides supplied by the caller

Merge contract: fields typed ``object`` are deep-merged key by key across the
tiers; every other field is replaced wholesale by the highest tier that has a
value. ``None`` counts as "no value". The same ``merge_layers`` is used by
theme resolution.
"""

import copy
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .errors import (
    ConfigValidationError,
    InvalidOptionError,
    MissingRequiredConfigError,
)
from .manifest import AppManifest, ConfigField, ConfigFieldType


def merge_layers(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Deep merge mappings, later layers overriding earlier ones.

    Nested mappings are merged key by key; any other value (lists included)
    replaces the earlier one. ``None`` values never override. Inputs are not
    mutated.
    """
    result: Dict[str, Any] = {}
    for layer in layers:
        if not layer:
            continue
        _merge_into(result, layer)
    return result


def _merge_into(target: Dict[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if value is None:
            continue
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _merge_into(target[key], value)
        elif isinstance(value, Mapping):
            target[key] = merge_layers(value)
        else:
            target[key] = copy.deepcopy(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class ValueCheck:
    """Outcome of checking one value against its field."""

    valid: bool
    error: Optional[str] = None


class ConfigResolver:
    """
    Resolves effective app configuration and checks field rules.

    Pure: no I/O, no logging. Failures are raised as typed errors naming the
    offending field.
    """

    def resolve(
        self,
        schema: Mapping[str, ConfigField],
        defaults: Optional[Mapping[str, Any]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        *,
        app_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Merge the three tiers into an effective configuration.

        Args:
            schema: Field name -> ConfigField
            defaults: Middle tier values
            overrides: Caller supplied values (highest precedence)
            app_id: App the configuration belongs to, used in error messages

        Returns:
            Effective configuration dict (schema fields first, then any
            pass-through keys not declared in the schema)

        Raises:
            MissingRequiredConfigError: required field with no value
            InvalidOptionError: select/multiselect value outside options
            ConfigValidationError: wrong type, out of range, pattern mismatch
        """
        defaults = defaults or {}
        overrides = overrides or {}
        effective: Dict[str, Any] = {}

        for name, config_field in schema.items():
            value = self._merge_field(
                config_field,
                config_field.default_value,
                defaults.get(name),
                overrides.get(name),
            )

            if value is None:
                if config_field.required:
                    raise MissingRequiredConfigError(name, app_id=app_id)
                continue

            error = self._check(name, config_field, value, app_id)
            if error is not None:
                raise error
            effective[name] = value

        for source in (defaults, overrides):
            for name, value in source.items():
                if name in schema or value is None:
                    continue
                effective[name] = copy.deepcopy(value)

        return effective

    def resolve_for_manifest(
        self,
        manifest: AppManifest,
        overrides: Optional[Mapping[str, Any]] = None,
        *,
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Resolve configuration for a manifest.

        ``defaults`` replaces the manifest's ``defaultValues`` when given
        (e.g. an installation's stored config).
        """
        return self.resolve(
            manifest.config_schema(),
            manifest.config_defaults() if defaults is None else defaults,
            overrides,
            app_id=manifest.id,
        )

    def validate_value(self, config_field: ConfigField, value: Any) -> ValueCheck:
        """
        Check a single value against its field rules.

        ``None`` is valid only for optional fields.
        """
        if value is None:
            if config_field.required:
                return ValueCheck(valid=False, error="required field has no value")
            return ValueCheck(valid=True)

        error = self._check(config_field.label or "value", config_field, value, None)
        if error is None:
            return ValueCheck(valid=True)
        return ValueCheck(valid=False, error=error.reason)

    def _merge_field(self, config_field: ConfigField, *tiers: Any) -> Any:
        present = [t for t in tiers if t is not None]
        if not present:
            return None

        if config_field.field_type is ConfigFieldType.OBJECT and all(
            isinstance(t, Mapping) for t in present
        ):
            return merge_layers(*present)

        return copy.deepcopy(present[-1])

    def _check(
        self,
        name: str,
        config_field: ConfigField,
        value: Any,
        app_id: Optional[str],
    ) -> Optional[ConfigValidationError]:
        field_type = config_field.field_type

        if field_type is ConfigFieldType.STRING and not isinstance(value, str):
            return ConfigValidationError(name, "expected a string", value=value, app_id=app_id)

        if field_type is ConfigFieldType.NUMBER and not _is_number(value):
            return ConfigValidationError(name, "expected a number", value=value, app_id=app_id)

        if field_type is ConfigFieldType.BOOLEAN and not isinstance(value, bool):
            return ConfigValidationError(name, "expected a boolean", value=value, app_id=app_id)

        if field_type is ConfigFieldType.OBJECT and not isinstance(value, Mapping):
            return ConfigValidationError(name, "expected an object", value=value, app_id=app_id)

        if field_type is ConfigFieldType.SELECT:
            allowed = config_field.option_values()
            if value not in allowed:
                return InvalidOptionError(
                    name,
                    f"{value!r} is not one of {allowed!r}",
                    value=value,
                    app_id=app_id,
                )

        if field_type is ConfigFieldType.MULTISELECT:
            if not isinstance(value, (list, tuple, set, frozenset)):
                return ConfigValidationError(name, "expected a list of options", value=value, app_id=app_id)
            allowed = config_field.option_values()
            unknown = [v for v in value if v not in allowed]
            if unknown:
                return InvalidOptionError(
                    name,
                    f"{unknown!r} not in {allowed!r}",
                    value=value,
                    app_id=app_id,
                )

        rules = config_field.validation
        if rules is None:
            return None

        if _is_number(value):
            if _is_number(rules.min) and value < rules.min:
                return ConfigValidationError(
                    name, f"{value} is below minimum {rules.min}", value=value, app_id=app_id
                )
            if _is_number(rules.max) and value > rules.max:
                return ConfigValidationError(
                    name, f"{value} is above maximum {rules.max}", value=value, app_id=app_id
                )

        if rules.pattern and isinstance(value, str):
            try:
                matched = re.fullmatch(rules.pattern, value)
            except (re.error, TypeError) as exc:
                return ConfigValidationError(
                    name, f"invalid pattern {rules.pattern!r}: {exc}", value=value, app_id=app_id
                )
            if matched is None:
                return ConfigValidationError(
                    name, f"does not match pattern {rules.pattern!r}", value=value, app_id=app_id
                )

        return None
