"""Effect description models.

An effect description is the engine's pure output: it names a side effect
(show a message, write a file, something else) for an external executor to
perform. The engine itself never performs it.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SerializationInfo, field_serializer
from pydantic.alias_generators import to_camel

from mdcrules.rules.models import EffectKind, Priority


class EffectDescription(BaseModel):
    """Side effect requested by a fired action.

    ``model_dump(by_alias=True)`` produces the executor wire form: camelCase
    keys (``targetPath``, ``effectKind``) and camelCase effect kinds
    (``message``, ``fileWrite``, ``other``).
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    effect_kind: EffectKind = Field(..., description="What kind of effect to perform")
    content: str = Field(..., description="Message text or rendered template")
    target_path: str | None = Field(default=None, description="Where to write, if anywhere")
    rule_name: str = Field(..., description="Rule whose action produced the effect")
    action_index: int = Field(default=0, ge=0, description="Action position within the rule")
    priority: Priority = Field(default=Priority.MEDIUM, description="Priority of the rule")

    @field_serializer("effect_kind")
    def serialize_effect_kind(self, kind: EffectKind, info: SerializationInfo) -> EffectKind | str:
        if info.by_alias:
            return to_camel(kind.value)
        return kind

    @property
    def is_message(self) -> bool:
        return self.effect_kind == EffectKind.MESSAGE

    @property
    def is_file_write(self) -> bool:
        return self.effect_kind == EffectKind.FILE_WRITE
