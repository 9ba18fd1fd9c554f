"""Read-only view of one resolved operation fragment.

An operation file describes everything a test framework needs to exercise the
endpoint and everything the document writer needs to describe it::

    id: Widgets::Show
    summary: Fetch a widget
    parameters:
      - widget_id            # -> $ref '#/components/parameters/widget_id'
      - name: include
        in: query
    responses:
      '200':
        schema: widget       # -> $ref to components/responses/widget
        examples:
          - description: with include
            params: {include: parts}

:class:`OperationTemplate` wraps such a fragment, normalises its keys
(``id`` -> ``operationId``, ``x-foo`` -> ``foo``) and exposes typed accessors
with defaults. :meth:`OperationTemplate.examples` produces the seed list from
which the test framework builds one test case per example.
"""

from __future__ import annotations

import copy
import re
from typing import Any, Callable, Optional, Sequence

from specsmith.compiler.refs import normalize_refs as expand_refs
from specsmith.exceptions import MissingOperationIdError
from specsmith.models import DRAFT, OperationKey
from specsmith.versions import VersionIndex, get_index

DEFAULT_EXAMPLE_METADATA: dict[str, Any] = {
    "before": [],
    "after": [],
    "headers": {},
    "let": {},
    "params": {},
    "parameters": [],
    "metadata": {},
}
DEFAULT_REQUEST_CONTENT_TYPES = ["application/json"]
DEFAULT_RESPONSE_CONTENT_TYPE = "application/json"

# Attributes copied from the operation onto every example it generates.
INHERITED_EXAMPLE_ATTRIBUTES = ("core-version",)

RESPONSE_HAS_DATA_CHECK = "validate_response_has_data"

_VENDOR_PREFIX = re.compile(r"^x-")
_REQUEST_BODY_SCHEMA_REF = re.compile(
    r"^#/components/requestBodies/([^/]+)/content/application~1json/schema$"
)


class OperationTemplate:
    """Queryable projection of an operation fragment merged with defaults.

    Args:
        attributes: The resolved fragment plus contextual keys
            (``operation``, ``api_version``, ``http_method``, ``path``).
        legacy_prefixes: Operation prefixes allowed to omit an ``operationId``.
    """

    def __init__(
        self, attributes: dict[str, Any], legacy_prefixes: Sequence[str] = ()
    ) -> None:
        self._attributes = {
            _normalize_key(key): value for key, value in copy.deepcopy(attributes).items()
        }
        self.legacy_prefixes = tuple(legacy_prefixes)
        self._resolvers: dict[str, Callable[[], Any]] = {
            "operation": lambda: self.operation,
            "api_version": lambda: self.api_version,
            "http_method": lambda: self.http_method,
            "path": lambda: self.path,
            "before": self.before,
            "after": self.after,
            "let": self.let,
            "params": self.params,
            "consumes": self.consumes,
            "produces": self.produces,
            "parameters": self.parameters,
            "request_body_json": self.request_body_json,
            "security": self.security,
            "operationId": self.operation_id,
            "id": self.operation_id,
            "summary": self.summary,
            "tags": self.tags,
            "responses": self.responses,
            "examples": self.examples,
        }

    @classmethod
    def find(
        cls,
        operation: str,
        api_version: Optional[str] = None,
        index: Optional[VersionIndex] = None,
        legacy_prefixes: Sequence[str] = (),
    ) -> "OperationTemplate":
        """Resolve *operation* for *api_version* and wrap it.

        Args:
            operation: ``"GET /widgets"`` or ``"/api/widgets/get"``.
            api_version: Version token; ``None`` means ``draft``.
            index: Index to resolve against; defaults to
                :func:`~specsmith.versions.get_index`.
            legacy_prefixes: See :class:`OperationTemplate`.

        Raises:
            OperationNotFoundError: If the operation is unknown.
        """
        index = index if index is not None else get_index()
        key = OperationKey.parse(operation, index.prefix)
        attributes = index.template_for(key, api_version)
        attributes.update(
            operation=key.slug,
            api_version=api_version,
            http_method=key.method,
            path=key.path,
        )
        return cls(attributes, legacy_prefixes=legacy_prefixes)

    # ------------------------------------------------------------------ #
    # Generic lookup
    # ------------------------------------------------------------------ #

    @property
    def attributes(self) -> dict[str, Any]:
        """A copy of the normalised attributes."""
        return copy.deepcopy(self._attributes)

    def get(self, name: str, default: Any = None) -> Any:
        """Look *name* up in the accessor registry, then in the raw attributes."""
        resolver = self._resolvers.get(name)
        if resolver is not None:
            return resolver()
        return copy.deepcopy(self._attributes.get(name, default))

    def __getitem__(self, name: str) -> Any:
        if name not in self._resolvers and name not in self._attributes:
            raise KeyError(name)
        return self.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._resolvers or name in self._attributes

    def __repr__(self) -> str:
        return f"OperationTemplate({self.operation!r}, api_version={self.api_version!r})"

    # ------------------------------------------------------------------ #
    # Context
    # ------------------------------------------------------------------ #

    @property
    def operation(self) -> str:
        """Path and method of the operation, e.g. ``/api/widgets/{id}/get``."""
        return self._attributes.get("operation", "")

    @property
    def api_version(self) -> str:
        return self._attributes.get("api_version") or DRAFT

    @property
    def http_method(self) -> str:
        return self._attributes.get("http_method", "")

    @property
    def path(self) -> str:
        return self._attributes.get("path", "")

    def context_metadata(self) -> dict[str, Any]:
        """Metadata the test framework attaches to the operation's test group."""
        operation = {
            k: self._attributes[k] for k in ("description", "summary") if k in self._attributes
        }
        operation["verb"] = self.http_method
        return {
            "operation": operation,
            "path_item": {"template": self.path},
            "openapi_doc": f"{self.api_version}.json",
            "operation_template": self,
            **self.attribute_metadata(),
        }

    def attribute_metadata(self) -> dict[str, Any]:
        return {k: self._attributes[k] for k in ("focus", "skip") if k in self._attributes}

    def before(self) -> list[Any]:
        return list(self._attributes.get("before") or [])

    def after(self) -> list[Any]:
        return list(self._attributes.get("after") or [])

    def let(self) -> dict[str, Any]:
        return dict(self._attributes.get("let") or {})

    def params(self) -> dict[str, Any]:
        return dict(self._attributes.get("params") or {})

    def lets_and_params(self) -> dict[str, Any]:
        return {**self.let(), **self.params()}

    # ------------------------------------------------------------------ #
    # OpenAPI metadata
    # ------------------------------------------------------------------ #

    def consumes(self) -> list[str]:
        content_type = self._attributes.get("request_content_type")
        if content_type is None:
            return list(DEFAULT_REQUEST_CONTENT_TYPES)
        return list(_flatten(content_type))

    def produces(self) -> str:
        return DEFAULT_RESPONSE_CONTENT_TYPE

    def parameters(self) -> list[dict[str, Any]]:
        """Parameters with shorthands expanded.

        * a bare string names a parameter component;
        * objects with ``content`` are kept as-is;
        * a string ``schema`` names a schema component;
        * other objects default ``in`` to ``formData`` and get a ``string``
          schema type (or their own ``type``) unless the schema is composed
          with ``oneOf``/``allOf``/``anyOf`` or is a ``$ref``.
        """
        result = []
        for config in _as_list(self._attributes.get("parameters")):
            if isinstance(config, str):
                result.append({"$ref": f"#/components/parameters/{config}"})
                continue
            config = copy.deepcopy(config)
            if "content" in config:
                result.append(config)
                continue
            config.setdefault("in", "formData")
            schema = config.get("schema")
            if isinstance(schema, str):
                schema = {"$ref": f"#/components/schemas/{schema}"}
            schema = dict(schema) if isinstance(schema, dict) else {}
            if "$ref" not in schema and not any(str(key).endswith("Of") for key in schema):
                schema.setdefault("type", config.get("type") or "string")
            config["schema"] = schema
            config.pop("type", None)
            result.append(config)
        return result

    def parameter_keys(self) -> list[str]:
        """Names of all parameters, taken from ``name`` or the ``$ref`` target."""
        keys = []
        for parameter in self.parameters():
            name = parameter.get("name") or str(parameter.get("$ref", "")).split("/")[-1]
            if name:
                keys.append(str(name))
        return keys

    def request_body_json(self) -> Optional[dict[str, Any]]:
        """The JSON request body, or ``None`` when the operation declares none.

        A bare value is treated as the schema. String schemas name a request
        body component.
        """
        config = self._attributes.get("request_body")
        if config is None:
            return None
        if not isinstance(config, dict) or "schema" not in config:
            config = {"schema": config}
        config = normalize_schema_ref("requestBodies", copy.deepcopy(config))
        config.setdefault("examples", "request_body")
        return config

    def security(self) -> None:
        """Per-operation security is not supported; the document-level default applies."""
        return None

    def operation_id(self) -> Optional[str]:
        """The ``operationId``.

        Raises:
            MissingOperationIdError: If there is none and the operation is not
                under one of :attr:`legacy_prefixes`.
        """
        operation_id = self._attributes.get("operationId")
        if operation_id:
            return str(operation_id)
        if any(self.operation.startswith(prefix) for prefix in self.legacy_prefixes):
            return None
        raise MissingOperationIdError(
            f"Operation ID is missing for {self.operation} ({self.api_version}); "
            "add `id:` to the operation yml file"
        )

    def summary(self) -> Optional[str]:
        return self._attributes.get("summary")

    def tags(self) -> str:
        return ",".join(str(tag) for tag in _flatten(self._attributes.get("tags") or []))

    # ------------------------------------------------------------------ #
    # Responses and examples
    # ------------------------------------------------------------------ #

    def responses(self) -> list[dict[str, Any]]:
        """Responses as a list, each with ``status``, ``description`` and ``examples``.

        Accepts the ``{'200': {...}}`` mapping and the legacy list of
        responses carrying their own ``status``.
        """
        raw = self._attributes.get("responses") or {}
        if isinstance(raw, dict):
            items = [(str(status), response) for status, response in raw.items()]
        else:
            items = [(None, response) for response in raw]

        result = []
        for status, response in items:
            response = copy.deepcopy(response) if isinstance(response, dict) else {}
            if response.get("status") is None:
                response["status"] = status
            response["status"] = None if response["status"] is None else str(response["status"])
            if response.get("description") is None:
                response["description"] = ""
            if response.get("examples") is None:
                response["examples"] = []
            result.append(response)
        return result

    def examples(self) -> list[dict[str, Any]]:
        """One test seed per example, grouped by response.

        Every response yields a *master* example that is always run, followed
        by its *documented* examples, which inherit the master's context and
        override its description and fields. A ``200`` master also gets the
        ``validate_response_has_data`` post-condition unless the response sets
        ``validate_response_has_data: false``.
        """
        all_examples = []
        for response in self.responses():
            documented = response.pop("examples")
            master = copy.deepcopy(DEFAULT_EXAMPLE_METADATA)
            master.update(response)
            master.update(
                {k: self._attributes[k] for k in INHERITED_EXAMPLE_ATTRIBUTES if k in self._attributes}
            )
            master["master_example"] = True
            master = normalize_schema_ref("responses", master)

            if master["status"] == "200" and master.get(RESPONSE_HAS_DATA_CHECK) is not False:
                after = list(master.get("after") or [])
                if RESPONSE_HAS_DATA_CHECK not in after:
                    after.append(RESPONSE_HAS_DATA_CHECK)
                master["after"] = after

            all_examples.append(master)
            for example in _as_list(documented):
                all_examples.append(self.build_example(example, master))
        return all_examples

    def build_example(
        self, example: dict[str, Any], master_example: dict[str, Any]
    ) -> dict[str, Any]:
        """Derive a documented example from its response's master example."""
        result = {
            k: copy.deepcopy(v)
            for k, v in master_example.items()
            if k not in ("master_example", "focus", "skip")
        }
        result.update({k: copy.deepcopy(v) for k, v in example.items() if k != "description"})
        result["example_description"] = example.get("description")
        return normalize_schema_ref("responses", result)

    # ------------------------------------------------------------------ #
    # Document output
    # ------------------------------------------------------------------ #

    def to_operation(self, components: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Render an OpenAPI 3 Operation Object for the document writer.

        Args:
            components: The ``components`` of the document the operation goes
                into. A request body naming a component links that component's
                JSON examples, one ``$ref`` per example, when it defines any.
        """
        operation: dict[str, Any] = {}
        operation_id = self.operation_id()
        if operation_id:
            operation["operationId"] = operation_id
        for key in ("summary", "description", "deprecated"):
            if self._attributes.get(key) is not None:
                operation[key] = self._attributes[key]
        tags = [str(tag) for tag in _flatten(self._attributes.get("tags") or [])]
        if tags:
            operation["tags"] = tags

        parameters = [p for p in self.parameters() if p.get("in") not in ("formData", "body")]
        if parameters:
            operation["parameters"] = parameters

        body = self.request_body_json()
        if body is not None:
            media: dict[str, Any] = {"schema": body["schema"]}
            examples = _component_examples(body["schema"], components)
            if examples:
                media["examples"] = examples
            request_body: dict[str, Any] = {
                "content": {content_type: media for content_type in self.consumes()},
                "required": body.get("required", True),
            }
            if body.get("description"):
                request_body["description"] = body["description"]
            operation["requestBody"] = request_body

        responses: dict[str, Any] = {}
        for example in self.examples():
            if not example.get("master_example"):
                continue
            response: dict[str, Any] = {"description": example.get("description") or ""}
            if example.get("schema") is not None:
                response["content"] = {self.produces(): {"schema": example["schema"]}}
            responses[example["status"] or "default"] = response
        operation["responses"] = responses
        return operation


def normalize_schema_ref(component_type: str, data: dict[str, Any]) -> dict[str, Any]:
    """Expand ``data["schema"]`` as if it sat under ``components/<component_type>``.

    ``'widget'`` under ``responses`` becomes
    ``{'$ref': '#/components/responses/widget/content/application~1json/schema'}``.
    """
    nested = expand_refs({"components": {component_type: {"x": {"schema": data.get("schema")}}}})
    data["schema"] = nested["components"][component_type]["x"]["schema"]
    return data


def _component_examples(
    schema: Any, components: Optional[dict[str, Any]]
) -> dict[str, Any]:
    """Example ``$ref`` map for a schema pointing into a request body component."""
    ref = schema.get("$ref") if isinstance(schema, dict) else None
    match = _REQUEST_BODY_SCHEMA_REF.match(ref) if isinstance(ref, str) else None
    if match is None or not components:
        return {}
    name = match.group(1).replace("~1", "/").replace("~0", "~")
    component = (components.get("requestBodies") or {}).get(name) or {}
    media = (component.get("content") or {}).get(DEFAULT_REQUEST_CONTENT_TYPES[0]) or {}
    examples = media.get("examples")
    if not isinstance(examples, dict):
        return {}
    base = ref[: -len("schema")] + "examples/"
    return {
        key: {"$ref": base + str(key).replace("~", "~0").replace("/", "~1")}
        for key in examples
    }


def _normalize_key(key: str) -> str:
    if key == "id":
        return "operationId"
    return _VENDOR_PREFIX.sub("", str(key))


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _flatten(value: Any) -> list[Any]:
    result: list[Any] = []
    for item in _as_list(value):
        if isinstance(item, list):
            result.extend(_flatten(item))
        else:
            result.append(item)
    return result
