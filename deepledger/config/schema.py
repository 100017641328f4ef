# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe configuration schemas for DeepLedger.

One frozen pydantic model per YAML section:
  - frozen=True: a loaded config cannot be mutated
  - extra="forbid": typos in keys fail loudly instead of being ignored
  - validate_default=True: defaults go through the same checks as user values

A config file has a mandatory ``global:`` section and optional ``ledger:``
and ``activation:`` sections.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from deepledger.activation.core import Activation, get_activation


class GlobalConfig(BaseModel):
    """Cross-cutting settings: reproducibility and observability."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(
        description="Schema version for compatibility tracking, e.g. '1.0.0'"
    )
    project_name: str = Field(
        default="deepledger", description="Human-readable project identifier"
    )
    seed: int = Field(
        default=42,
        ge=0,
        description="Random seed applied to python and torch at bootstrap",
    )
    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path that receives a copy of every JSON log line",
    )


class LedgerConfig(BaseModel):
    """
    How to build or load a ledger.

    The snapshot lives next to the corpus at ``corpus_path + snapshot_suffix``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(description="Schema version")
    corpus_path: str = Field(
        description="Raw corpus, one 'token v1 ... vD' line per token"
    )
    snapshot_suffix: str = Field(
        default=".snapshot",
        min_length=1,
        description="Appended to corpus_path to locate the binary snapshot",
    )
    shape_threshold: float = Field(
        default=0.0001,
        gt=0.0,
        le=1.0,
        description="A shape is kept when its count exceeds token_count * shape_threshold",
    )
    shape_function: str = Field(
        default="character_class",
        min_length=1,
        description="Registered shape function name, or 'module:callable' import path",
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Threads used to average shape vectors",
    )
    use_snapshot: bool = Field(
        default=True,
        description="Read and write the snapshot cache; False always parses the corpus",
    )
    export_path: Optional[str] = Field(
        default=None,
        description="If set, the build command also writes a plain-text export here",
    )


class ActivationConfig(BaseModel):
    """Activation used by a layer and the layer's fan-in/fan-out."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    config_version: str = Field(description="Schema version")
    kind: Activation = Field(
        default=Activation.HYPERBOLIC_TANGENT,
        description="Activation name, e.g. 'sigmoid' or 'LeakyReLU'",
    )
    fan_in: int = Field(default=1, ge=1, description="Neurons feeding the layer")
    fan_out: int = Field(default=1, ge=1, description="Neurons in the layer")

    @field_validator("kind", mode="before")
    @classmethod
    def _resolve_kind(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return get_activation(value)
            except KeyError as err:
                raise ValueError(str(err)) from err
        return value


class DeepLedgerConfig(BaseModel):
    """
    Top-level config container.

    Sections missing from the YAML stay None; each CLI command checks for the
    sections it needs.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    global_config: GlobalConfig = Field(alias="global")
    ledger: Optional[LedgerConfig] = Field(default=None)
    activation: Optional[ActivationConfig] = Field(default=None)
