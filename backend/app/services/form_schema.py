"""
Form Schema Builder

Turns admin-defined profile sections into
- a Pydantic model built at runtime, used to validate submitted section data
- a render plan: the ordered, visible controls a client draws for the form

Each field's ``validation`` block is read into a list of FieldConstraint
values, and one generic checker interprets that list. Pydantic supplies the
base type for the field type (str, number, bool, list, anything for files).
"""
import re
from dataclasses import dataclass
from functools import partial
from typing import Annotated, Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, create_model
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import FormValidationError
from app.schemas.dynamic_config import DynamicField, ProfileSection


# ==================== Constraints ====================

@dataclass(frozen=True)
class Required:
    """Value must be present and, for text and lists, non-empty"""


@dataclass(frozen=True)
class MinLength:
    value: int


@dataclass(frozen=True)
class MaxLength:
    value: int


@dataclass(frozen=True)
class MinValue:
    value: float


@dataclass(frozen=True)
class MaxValue:
    value: float


@dataclass(frozen=True)
class Pattern:
    regex: str


@dataclass(frozen=True)
class AllowedValues:
    values: Tuple[str, ...]


FieldConstraint = Union[Required, MinLength, MaxLength, MinValue, MaxValue, Pattern, AllowedValues]


TEXT_TYPES = {"text", "textarea", "email", "phone", "url", "date", "select", "radio"}
NUMERIC_TYPES = {"number", "rating"}

_BASE_TYPES: Dict[str, Any] = {
    **{t: str for t in TEXT_TYPES},
    **{t: Union[int, float] for t in NUMERIC_TYPES},
    "checkbox": bool,
    "multiselect": List[str],
    "file": Any,
}

# Field type -> UI control kind
CONTROL_KINDS: Dict[str, str] = {
    "text": "input",
    "email": "input",
    "phone": "input",
    "url": "input",
    "textarea": "textarea",
    "number": "number",
    "rating": "rating",
    "select": "select",
    "multiselect": "multiselect",
    "checkbox": "checkbox",
    "radio": "radio",
    "date": "date",
    "file": "file",
}


def constraints_for(field: DynamicField) -> List[FieldConstraint]:
    """Read a descriptor's validation block into constraint values"""
    rules = field.validation
    if rules is None:
        return []

    constraints: List[FieldConstraint] = []
    if rules.required:
        constraints.append(Required())
    if rules.min_length is not None:
        constraints.append(MinLength(rules.min_length))
    if rules.max_length is not None:
        constraints.append(MaxLength(rules.max_length))
    if rules.min is not None:
        constraints.append(MinValue(rules.min))
    if rules.max is not None:
        constraints.append(MaxValue(rules.max))
    if rules.pattern:
        constraints.append(Pattern(rules.pattern))
    if rules.allowed_values:
        constraints.append(AllowedValues(tuple(rules.allowed_values)))
    return constraints


def check_constraints(field_type: str, constraints: Sequence[FieldConstraint], value: Any) -> Any:
    """Apply every constraint that makes sense for ``field_type``; raise ValueError on the first failure"""
    if value is None:
        if any(isinstance(c, Required) for c in constraints):
            raise ValueError("This field is required")
        return value

    sized = isinstance(value, (str, list))
    for constraint in constraints:
        if isinstance(constraint, Required):
            if sized and len(value) == 0:
                raise ValueError("This field is required")
        elif isinstance(constraint, MinLength):
            if sized and len(value) < constraint.value:
                raise ValueError(f"Must contain at least {constraint.value} characters" if isinstance(value, str)
                                 else f"Select at least {constraint.value} options")
        elif isinstance(constraint, MaxLength):
            if sized and len(value) > constraint.value:
                raise ValueError(f"Must contain at most {constraint.value} characters" if isinstance(value, str)
                                 else f"Select at most {constraint.value} options")
        elif isinstance(constraint, MinValue):
            if field_type in NUMERIC_TYPES and value < constraint.value:
                raise ValueError(f"Must be greater than or equal to {constraint.value:g}")
        elif isinstance(constraint, MaxValue):
            if field_type in NUMERIC_TYPES and value > constraint.value:
                raise ValueError(f"Must be less than or equal to {constraint.value:g}")
        elif isinstance(constraint, Pattern):
            if isinstance(value, str) and value:
                try:
                    matched = re.search(constraint.regex, value)
                except re.error:
                    raise ValueError("Field pattern is misconfigured")
                if not matched:
                    raise ValueError("Invalid format")
        elif isinstance(constraint, AllowedValues):
            candidates = value if isinstance(value, list) else [value]
            rejected = [v for v in candidates if str(v) not in constraint.values]
            if rejected:
                raise ValueError(f"Value must be one of: {', '.join(constraint.values)}")
    return value


# ==================== Model builder ====================

def coerce_sections(sections: Iterable[Union[ProfileSection, Dict[str, Any]]]) -> List[ProfileSection]:
    """Accept stored dicts or ProfileSection models"""
    return [
        s if isinstance(s, ProfileSection) else ProfileSection.model_validate(s, context={"stored": True})
        for s in sections
    ]


def visible_sections(sections: Iterable[Union[ProfileSection, Dict[str, Any]]]) -> List[ProfileSection]:
    """Visible sections in render order; ties keep their original position"""
    return sorted((s for s in coerce_sections(sections) if s.visible), key=lambda s: s.order)


def visible_fields(section: ProfileSection) -> List[DynamicField]:
    return sorted((f for f in section.fields if f.visible), key=lambda f: f.order)


def _field_definition(field: DynamicField) -> Tuple[Any, Any]:
    constraints = constraints_for(field)
    base = _BASE_TYPES.get(field.type, str)
    annotated = Annotated[base, AfterValidator(partial(check_constraints, field.type, tuple(constraints)))]

    if any(isinstance(c, Required) for c in constraints):
        return annotated, Field(..., alias=field.id)
    return Optional[annotated], Field(None, alias=field.id)


def build_form_model(sections: Iterable[Union[ProfileSection, Dict[str, Any]]],
                     model_name: str = "DynamicForm") -> Type[BaseModel]:
    """
    Build a Pydantic model with one attribute per visible field of every
    visible section. Attributes are addressed by field id (alias); unknown
    keys in submitted data pass through untouched.
    """
    definitions: Dict[str, Tuple[Any, Any]] = {}
    by_id: Dict[str, str] = {}
    for section in visible_sections(sections):
        for field in visible_fields(section):
            # Later sections win when two sections reuse a field id
            attr = by_id.setdefault(field.id, f"field_{len(by_id)}")
            definitions[attr] = _field_definition(field)

    return create_model(
        model_name,
        __config__=ConfigDict(extra="allow", populate_by_name=False),
        **definitions,
    )


def validate_form_data(sections: Iterable[Union[ProfileSection, Dict[str, Any]]],
                       data: Dict[str, Any],
                       section_id: Optional[str] = None) -> Dict[str, Any]:
    """Validate ``data`` against the sections' fields and return the cleaned values"""
    model = build_form_model(sections)
    try:
        instance = model.model_validate(data or {})
    except PydanticValidationError as e:
        errors = [
            {
                "field": ".".join(str(part) for part in err["loc"]) or None,
                "message": err["msg"].removeprefix("Value error, "),
                "type": err["type"],
            }
            for err in e.errors()
        ]
        raise FormValidationError(errors, section_id=section_id)
    return instance.model_dump(by_alias=True, exclude_unset=True)


# ==================== Render plan ====================

def _render_field(field: DynamicField) -> Dict[str, Any]:
    control = CONTROL_KINDS.get(field.type, "input")
    rules = field.validation
    rendered: Dict[str, Any] = {
        "id": field.id,
        "control": control,
        "label": field.label,
        "placeholder": field.placeholder,
        "description": field.description,
        "size": field.size,
        "required": bool(rules and rules.required),
        "defaultValue": field.default_value,
    }
    if control == "input":
        rendered["inputType"] = "tel" if field.type == "phone" else field.type
    if control == "textarea":
        rendered["rows"] = 4 if field.multiline else 2
    if control in ("select", "multiselect", "radio"):
        rendered["options"] = [o.to_document() for o in field.options or []]
        rendered["searchable"] = field.searchable
    if control in ("number", "rating") and rules is not None:
        rendered["min"] = rules.min
        rendered["max"] = rules.max
    return rendered


def build_render_plan(sections: Iterable[Union[ProfileSection, Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Ordered visible sections with their ordered visible controls, keyed by id"""
    return [
        {
            "id": section.id,
            "type": section.type,
            "title": section.title,
            "description": section.description,
            "size": section.size,
            "required": section.required,
            "fields": [_render_field(f) for f in visible_fields(section)],
        }
        for section in visible_sections(sections)
    ]
