"""Core data types: Variable, Analysis, Refinement and generation settings."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Literal, cast

from styledna.errors import ValidationError
from styledna.serde import (
    as_str_object_dict,
    optional_bool,
    optional_float,
    optional_string,
    require_float,
    require_string,
    string_tuple,
)

VariableKind = Literal["text", "number", "select"]
PreserveMode = Literal["style", "style+palette", "style+composition"]
Quality = Literal["standard", "hd"]

STYLE_DNA_KEY = "style_dna"
VARIABLE_KINDS: frozenset[str] = frozenset({"text", "number", "select"})
QUALITIES: frozenset[str] = frozenset({"standard", "hd"})

_HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def is_pinned(key: str) -> bool:
    """Return whether a variable key is permanently locked against refinement."""
    return key == STYLE_DNA_KEY


def preserves_palette(mode: PreserveMode) -> bool:
    """Return whether a preserve mode carries the palette into generation."""
    return mode == "style+palette"


def preserves_composition(mode: PreserveMode) -> bool:
    """Return whether a preserve mode carries the composition into generation."""
    return mode == "style+composition"


@dataclass(frozen=True, slots=True)
class Variable:
    """One editable prompt variable extracted from a reference image."""

    key: str
    label: str
    kind: VariableKind
    suggested_value: str
    confidence: float
    locked: bool = False

    def to_dict(self) -> dict[str, object]:
        """Serialize Variable using the collaborator's wire names."""
        return {
            "key": self.key,
            "label": self.label,
            "type": self.kind,
            "suggestedValue": self.suggested_value,
            "lockedDefault": self.locked,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, value: object, *, field_name: str = "variable") -> Variable:
        """Deserialize Variable from the collaborator's wire format."""
        data = as_str_object_dict(value, field_name=field_name)
        key = require_string(data.get("key"), field_name=f"{field_name}.key")
        if not key:
            raise ValidationError(f"{field_name}.key", "must not be empty")
        kind = data.get("type")
        if not isinstance(kind, str) or kind not in VARIABLE_KINDS:
            raise ValidationError(f"{field_name}.type", f"must be one of {sorted(VARIABLE_KINDS)}")
        confidence = require_float(data.get("confidence"), field_name=f"{field_name}.confidence")
        if not 0.0 <= confidence <= 1.0:
            raise ValidationError(f"{field_name}.confidence", "must be between 0 and 1")
        return cls(
            key=key,
            label=require_string(data.get("label"), field_name=f"{field_name}.label"),
            kind=cast("VariableKind", kind),
            suggested_value=require_string(data.get("suggestedValue"), field_name=f"{field_name}.suggestedValue"),
            confidence=confidence,
            locked=optional_bool(data.get("lockedDefault"), field_name=f"{field_name}.lockedDefault"),
        )


@dataclass(frozen=True, slots=True)
class RecommendedSettings:
    """Generation settings suggested by the analysis."""

    aspect_ratio: str
    steps: float | None = None
    guidance: float | None = None
    notes: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize RecommendedSettings, omitting absent optional fields."""
        payload: dict[str, object] = {"aspect_ratio": self.aspect_ratio}
        if self.steps is not None:
            payload["steps"] = self.steps
        if self.guidance is not None:
            payload["guidance"] = self.guidance
        if self.notes is not None:
            payload["notes"] = self.notes
        return payload

    @classmethod
    def from_dict(cls, value: object, *, field_name: str = "recommended_settings") -> RecommendedSettings:
        """Deserialize RecommendedSettings from a plain dictionary."""
        data = as_str_object_dict(value, field_name=field_name)
        return cls(
            aspect_ratio=require_string(data.get("aspect_ratio"), field_name=f"{field_name}.aspect_ratio"),
            steps=optional_float(data.get("steps"), field_name=f"{field_name}.steps"),
            guidance=optional_float(data.get("guidance"), field_name=f"{field_name}.guidance"),
            notes=optional_string(data.get("notes"), field_name=f"{field_name}.notes"),
        )


@dataclass(frozen=True, slots=True)
class Palette:
    """Named color palette as ``#RRGGBB`` strings."""

    name: str
    colors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Normalize colors container to tuple."""
        object.__setattr__(self, "colors", tuple(self.colors))

    def to_dict(self) -> dict[str, object]:
        """Serialize Palette to a plain dictionary."""
        return {"name": self.name, "colors": list(self.colors)}

    @classmethod
    def from_dict(cls, value: object, *, field_name: str = "palette") -> Palette:
        """Deserialize Palette, rejecting colors that are not 6-digit hex codes."""
        data = as_str_object_dict(value, field_name=field_name)
        colors = string_tuple(data.get("colors"), field_name=f"{field_name}.colors")
        for index, color in enumerate(colors):
            if not _HEX_COLOR_RE.fullmatch(color):
                raise ValidationError(f"{field_name}.colors[{index}]", "must be a #RRGGBB hex color")
        return cls(
            name=require_string(data.get("name"), field_name=f"{field_name}.name"),
            colors=colors,
        )


@dataclass(frozen=True, slots=True)
class Composition:
    """Shot and framing description of the reference image."""

    shot_type: str
    angle: str
    focal_length_guess: str | None = None
    framing: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize Composition, omitting absent optional fields."""
        payload: dict[str, object] = {"shot_type": self.shot_type, "angle": self.angle}
        if self.focal_length_guess is not None:
            payload["focal_length_guess"] = self.focal_length_guess
        if self.framing is not None:
            payload["framing"] = self.framing
        return payload

    @classmethod
    def from_dict(cls, value: object, *, field_name: str = "composition") -> Composition:
        """Deserialize Composition from a plain dictionary."""
        data = as_str_object_dict(value, field_name=field_name)
        return cls(
            shot_type=require_string(data.get("shot_type"), field_name=f"{field_name}.shot_type"),
            angle=require_string(data.get("angle"), field_name=f"{field_name}.angle"),
            focal_length_guess=optional_string(
                data.get("focal_length_guess"), field_name=f"{field_name}.focal_length_guess"
            ),
            framing=optional_string(data.get("framing"), field_name=f"{field_name}.framing"),
        )


def _variables_from_payload(value: object, *, field_name: str) -> tuple[Variable, ...]:
    """Deserialize a list of variables."""
    if not isinstance(value, (list, tuple)):
        raise ValidationError(field_name, "must be a list")
    return tuple(Variable.from_dict(item, field_name=f"{field_name}[{index}]") for index, item in enumerate(value))


@dataclass(frozen=True, slots=True)
class Analysis:
    """Style analysis of a reference image.

    Construction is the one place the style descriptor lock is enforced: a
    variable whose key is pinned always comes out with ``locked=True``.
    """

    style_dna: str
    prompt_template: str
    variables: tuple[Variable, ...]
    negative_prompt: str
    recommended_settings: RecommendedSettings
    palette: Palette
    composition: Composition
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Normalize containers, reject duplicate keys and pin the style descriptor."""
        seen: set[str] = set()
        variables: list[Variable] = []
        for variable in self.variables:
            if variable.key in seen:
                raise ValidationError("variables", f"duplicate key {variable.key!r}")
            seen.add(variable.key)
            if is_pinned(variable.key) and not variable.locked:
                variable = replace(variable, locked=True)
            variables.append(variable)
        object.__setattr__(self, "variables", tuple(variables))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    def keys(self) -> tuple[str, ...]:
        """Return variable keys in order."""
        return tuple(variable.key for variable in self.variables)

    def variable(self, key: str) -> Variable | None:
        """Return the variable with the given key, if any."""
        for variable in self.variables:
            if variable.key == key:
                return variable
        return None

    def suggested_values(self) -> dict[str, str]:
        """Return a ``key -> suggested value`` mapping."""
        return {variable.key: variable.suggested_value for variable in self.variables}

    def to_dict(self) -> dict[str, object]:
        """Serialize Analysis using the collaborator's wire names."""
        return {
            "style_dna": self.style_dna,
            "prompt_template": self.prompt_template,
            "variables": [variable.to_dict() for variable in self.variables],
            "negative_prompt": self.negative_prompt,
            "recommended_settings": self.recommended_settings.to_dict(),
            "palette": self.palette.to_dict(),
            "composition": self.composition.to_dict(),
            "warnings": list(self.warnings),
        }

    @classmethod
    def from_dict(cls, value: object) -> Analysis:
        """Deserialize and validate an Analysis payload."""
        data = as_str_object_dict(value, field_name="analysis")
        return cls(
            style_dna=require_string(data.get("style_dna"), field_name="style_dna"),
            prompt_template=require_string(data.get("prompt_template"), field_name="prompt_template"),
            variables=_variables_from_payload(data.get("variables"), field_name="variables"),
            negative_prompt=require_string(data.get("negative_prompt"), field_name="negative_prompt"),
            recommended_settings=RecommendedSettings.from_dict(data.get("recommended_settings")),
            palette=Palette.from_dict(data.get("palette")),
            composition=Composition.from_dict(data.get("composition")),
            warnings=string_tuple(data.get("warnings"), field_name="warnings"),
        )


@dataclass(frozen=True, slots=True)
class Refinement:
    """Refined suggestions for unlocked variables."""

    variables: tuple[Variable, ...] = ()
    prompt_template: str | None = None

    def __post_init__(self) -> None:
        """Normalize variables container to tuple."""
        object.__setattr__(self, "variables", tuple(self.variables))

    def to_dict(self) -> dict[str, object]:
        """Serialize Refinement to a plain dictionary."""
        return {
            "variables": [variable.to_dict() for variable in self.variables],
            "prompt_template": self.prompt_template,
        }

    @classmethod
    def from_dict(cls, value: object) -> Refinement:
        """Deserialize a refine response; missing variables mean nothing was refined."""
        data = as_str_object_dict(value, field_name="refinement")
        raw_variables = data.get("variables")
        variables = () if raw_variables is None else _variables_from_payload(raw_variables, field_name="variables")
        return cls(
            variables=variables,
            prompt_template=optional_string(data.get("prompt_template"), field_name="prompt_template"),
        )


@dataclass(frozen=True, slots=True)
class GenerationSettings:
    """Output settings for one generation request."""

    aspect_ratio: str = "1:1"
    quality: Quality = "standard"
    seed: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize GenerationSettings to a plain dictionary."""
        return {"aspect_ratio": self.aspect_ratio, "quality": self.quality, "seed": self.seed}

    @classmethod
    def from_dict(cls, value: Mapping[str, object]) -> GenerationSettings:
        """Deserialize GenerationSettings from a plain dictionary."""
        quality = value.get("quality", "standard")
        if not isinstance(quality, str) or quality not in QUALITIES:
            raise ValidationError("settings.quality", f"must be one of {sorted(QUALITIES)}")
        return cls(
            aspect_ratio=require_string(value.get("aspect_ratio", "1:1"), field_name="settings.aspect_ratio"),
            quality=cast("Quality", quality),
            seed=optional_string(value.get("seed"), field_name="settings.seed") or None,
        )
