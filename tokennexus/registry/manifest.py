"""
AppManifest - pure data descriptor of an installable business app.

Manifests carry no behavior: routes, permissions, backend surface, scheduled
jobs, configuration schema and dependencies are plain data, fully
serializable and inspectable. ``from_dict`` accepts the camelCase keys used by
the dashboard and the Parse backend (``adminUI``, ``defaultValues``,
``appId``...) as well as snake_case.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum
import hashlib
import json


class ConfigFieldType(str, Enum):
    """Types a configuration field may declare."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    MULTISELECT = "multiselect"
    OBJECT = "object"


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _order(value: Any) -> Any:
    # YAML and JSON manifests may carry "5" next to 5; anything else is left
    # for the validator to reject.
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


@dataclass
class ConfigOption:
    value: Any
    label: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "ConfigOption":
        if isinstance(data, dict):
            return cls(value=data.get("value"), label=data.get("label", ""))
        return cls(value=data, label=str(data))


@dataclass
class FieldValidation:
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldValidation":
        return cls(min=data.get("min"), max=data.get("max"), pattern=data.get("pattern"))

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in (("min", self.min), ("max", self.max), ("pattern", self.pattern)) if v is not None}


@dataclass
class ConfigField:
    """
    One field of an app configuration schema.

    ``type`` is kept as the declared string so that the validator can report
    unknown types instead of failing at parse time.
    """

    type: str
    label: str = ""
    description: str = ""
    required: bool = False
    default_value: Any = None
    options: List[ConfigOption] = field(default_factory=list)
    validation: Optional[FieldValidation] = None

    @property
    def field_type(self) -> Optional[ConfigFieldType]:
        try:
            return ConfigFieldType(self.type)
        except ValueError:
            return None

    def option_values(self) -> List[Any]:
        return [opt.value for opt in self.options]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigField":
        validation = data.get("validation")
        return cls(
            type=str(data.get("type", "")),
            label=data.get("label", ""),
            description=data.get("description", ""),
            required=bool(data.get("required", False)),
            default_value=_pick(data, "defaultValue", "default_value"),
            options=[ConfigOption.from_dict(o) for o in data.get("options") or []],
            validation=FieldValidation.from_dict(validation) if validation else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type,
            "label": self.label,
            "required": self.required,
        }
        if self.description:
            data["description"] = self.description
        if self.default_value is not None:
            data["defaultValue"] = self.default_value
        if self.options:
            data["options"] = [{"value": o.value, "label": o.label} for o in self.options]
        if self.validation:
            data["validation"] = self.validation.to_dict()
        return data


@dataclass
class AppRoute:
    path: str
    component: str = ""
    title: str = ""
    description: str = ""
    permissions: List[str] = field(default_factory=list)
    layout: str = "default"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppRoute":
        return cls(
            path=data.get("path", ""),
            component=data.get("component", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            permissions=list(data.get("permissions") or []),
            layout=data.get("layout", "default"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "component": self.component,
            "title": self.title,
            "description": self.description,
            "permissions": list(self.permissions),
            "layout": self.layout,
        }


@dataclass
class NavigationItem:
    label: str
    path: str
    icon: Optional[str] = None
    order: Optional[int] = None
    permissions: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NavigationItem":
        return cls(
            label=data.get("label", ""),
            path=data.get("path", ""),
            icon=data.get("icon"),
            order=_order(data.get("order")),
            permissions=list(data.get("permissions") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"label": self.label, "path": self.path}
        if self.icon is not None:
            data["icon"] = self.icon
        if self.order is not None:
            data["order"] = self.order
        if self.permissions:
            data["permissions"] = list(self.permissions)
        return data


@dataclass
class UISection:
    """Admin or user UI surface of an app."""

    enabled: bool = False
    routes: List[AppRoute] = field(default_factory=list)
    navigation: List[NavigationItem] = field(default_factory=list)
    permissions: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UISection":
        return cls(
            enabled=bool(data.get("enabled", False)),
            routes=[AppRoute.from_dict(r) for r in data.get("routes") or []],
            navigation=[NavigationItem.from_dict(n) for n in data.get("navigation") or []],
            permissions=list(data.get("permissions") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "routes": [r.to_dict() for r in self.routes],
            "navigation": [n.to_dict() for n in self.navigation],
            "permissions": list(self.permissions),
        }


@dataclass
class Webhook:
    event: str
    url: str
    method: str = "POST"


@dataclass
class BackendSurface:
    """Names of the cloud functions, schemas and webhooks an app ships."""

    cloud_functions: List[str] = field(default_factory=list)
    schemas: List[str] = field(default_factory=list)
    webhooks: List[Webhook] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackendSurface":
        return cls(
            cloud_functions=list(_pick(data, "cloudFunctions", "cloud_functions", default=[])),
            schemas=list(data.get("schemas") or []),
            webhooks=[
                Webhook(event=w.get("event", ""), url=w.get("url", ""), method=w.get("method", "POST"))
                for w in data.get("webhooks") or []
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cloudFunctions": list(self.cloud_functions),
            "schemas": list(self.schemas),
            "webhooks": [{"event": w.event, "url": w.url, "method": w.method} for w in self.webhooks],
        }


@dataclass
class AppDependency:
    app_id: str
    version: str = ""
    apis: List[str] = field(default_factory=list)
    optional: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "AppDependency":
        if isinstance(data, str):
            return cls(app_id=data)
        return cls(
            app_id=_pick(data, "appId", "app_id", default=""),
            version=data.get("version", ""),
            apis=list(data.get("apis") or []),
            optional=bool(data.get("optional", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appId": self.app_id,
            "version": self.version,
            "apis": list(self.apis),
            "optional": self.optional,
        }


@dataclass
class DependencySpec:
    platform: str = ""
    apps: List[AppDependency] = field(default_factory=list)
    permissions: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DependencySpec":
        return cls(
            platform=data.get("platform", ""),
            apps=[AppDependency.from_dict(a) for a in data.get("apps") or []],
            permissions=list(data.get("permissions") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform,
            "apps": [a.to_dict() for a in self.apps],
            "permissions": list(self.permissions),
        }


@dataclass
class ConfigurationSpec:
    schema: Dict[str, ConfigField] = field(default_factory=dict)
    default_values: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigurationSpec":
        return cls(
            schema={
                name: ConfigField.from_dict(field_data)
                for name, field_data in (data.get("schema") or {}).items()
            },
            default_values=dict(_pick(data, "defaultValues", "default_values", default={})),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": {name: f.to_dict() for name, f in self.schema.items()},
            "defaultValues": dict(self.default_values),
        }


@dataclass
class ScheduledJob:
    """Declarative job executed by the backend scheduler."""

    id: str
    name: str = ""
    schedule: str = ""
    function: str = ""
    description: str = ""
    enabled: bool = True
    timezone: str = "UTC"
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduledJob":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            schedule=data.get("schedule", ""),
            function=data.get("function", ""),
            description=data.get("description", ""),
            enabled=bool(data.get("enabled", True)),
            timezone=data.get("timezone", "UTC"),
            params=dict(data.get("params") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "schedule": self.schedule,
            "function": self.function,
            "description": self.description,
            "enabled": self.enabled,
            "timezone": self.timezone,
            "params": dict(self.params),
        }


@dataclass
class Descriptor:
    """
    Named trigger or API entry.

    Only the name is interpreted here; ``attributes`` is kept verbatim for
    the trigger engine and API proxy.
    """

    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "Descriptor":
        if isinstance(data, str):
            return cls(name=data)
        attributes = {k: v for k, v in data.items() if k != "name"}
        return cls(name=data.get("name", ""), attributes=attributes)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, **self.attributes}


@dataclass
class FrameworkSpec:
    version: str = ""
    compatibility: List[str] = field(default_factory=list)


@dataclass
class AppManifest:
    """
    Descriptor of an installable application.

    ``id`` is the namespaced identity of the app (``nomyx-kyc-compliance``);
    it must be unique among the manifests known to a catalog.
    """

    id: str
    name: str
    version: str
    publisher: str = ""
    description: str = ""
    framework: FrameworkSpec = field(default_factory=FrameworkSpec)

    admin_ui: Optional[UISection] = None
    user_ui: Optional[UISection] = None
    backend: Optional[BackendSurface] = None
    dependencies: Optional[DependencySpec] = None
    configuration: Optional[ConfigurationSpec] = None

    scheduled_jobs: List[ScheduledJob] = field(default_factory=list)
    triggers: List[Descriptor] = field(default_factory=list)
    apis: List[Descriptor] = field(default_factory=list)

    category: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppManifest":
        framework = data.get("framework") or {}
        admin_ui = _pick(data, "adminUI", "admin_ui")
        user_ui = _pick(data, "userUI", "user_ui")
        backend = data.get("backend")
        dependencies = data.get("dependencies")
        configuration = data.get("configuration")

        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            version=data.get("version", ""),
            publisher=data.get("publisher", ""),
            description=data.get("description", ""),
            framework=FrameworkSpec(
                version=framework.get("version", ""),
                compatibility=list(framework.get("compatibility") or []),
            ),
            admin_ui=UISection.from_dict(admin_ui) if admin_ui is not None else None,
            user_ui=UISection.from_dict(user_ui) if user_ui is not None else None,
            backend=BackendSurface.from_dict(backend) if backend is not None else None,
            dependencies=DependencySpec.from_dict(dependencies) if dependencies is not None else None,
            configuration=ConfigurationSpec.from_dict(configuration) if configuration is not None else None,
            scheduled_jobs=[
                ScheduledJob.from_dict(j)
                for j in _pick(data, "scheduledJobs", "scheduled_jobs", default=[])
            ],
            triggers=[Descriptor.from_dict(t) for t in data.get("triggers") or []],
            apis=[Descriptor.from_dict(a) for a in data.get("apis") or []],
            category=data.get("category"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire shape."""
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "publisher": self.publisher,
            "description": self.description,
            "framework": {
                "version": self.framework.version,
                "compatibility": list(self.framework.compatibility),
            },
        }
        if self.admin_ui is not None:
            data["adminUI"] = self.admin_ui.to_dict()
        if self.user_ui is not None:
            data["userUI"] = self.user_ui.to_dict()
        if self.backend is not None:
            data["backend"] = self.backend.to_dict()
        if self.dependencies is not None:
            data["dependencies"] = self.dependencies.to_dict()
        if self.configuration is not None:
            data["configuration"] = self.configuration.to_dict()
        if self.scheduled_jobs:
            data["scheduledJobs"] = [j.to_dict() for j in self.scheduled_jobs]
        if self.triggers:
            data["triggers"] = [t.to_dict() for t in self.triggers]
        if self.apis:
            data["apis"] = [a.to_dict() for a in self.apis]
        if self.category is not None:
            data["category"] = self.category
        return data

    def dependency_entries(self) -> List[AppDependency]:
        if self.dependencies is None:
            return []
        return list(self.dependencies.apps)

    def required_dependencies(self) -> List[str]:
        return [d.app_id for d in self.dependency_entries() if not d.optional]

    def optional_dependencies(self) -> List[str]:
        return [d.app_id for d in self.dependency_entries() if d.optional]

    def config_schema(self) -> Dict[str, ConfigField]:
        if self.configuration is None:
            return {}
        return self.configuration.schema

    def config_defaults(self) -> Dict[str, Any]:
        if self.configuration is None:
            return {}
        return self.configuration.default_values

    def fingerprint(self) -> str:
        """Stable hash of the manifest content."""
        data = json.dumps(self.to_dict(), sort_keys=True, default=str)
        return hashlib.sha256(data.encode()).hexdigest()[:16]
