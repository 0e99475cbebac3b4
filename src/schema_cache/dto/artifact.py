"""Generated artifact models.

An artifact is what the generation pipeline produced for a prompt: a
database schema, the SQL rendered from it, and descriptive metadata.
Artifacts are a discriminated union on ``kind`` so the store/retrieve
round-trip is validated end to end.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

ColumnType = Literal[
    "uuid", "text", "integer", "decimal", "boolean", "jsonb", "timestamp", "date", "time"
]
PolicyOperation = Literal["SELECT", "INSERT", "UPDATE", "DELETE", "ALL"]
RelationshipType = Literal["one-to-one", "one-to-many", "many-to-many"]
OnDeleteAction = Literal["CASCADE", "SET NULL", "RESTRICT"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ColumnDefinition(_Frozen):
    """A single table column."""

    name: str = Field(..., min_length=1)
    type: ColumnType
    primary: bool = False
    unique: bool = False
    required: bool = False
    default: Any | None = None
    references: str | None = Field(None, description="Target as 'table.column'")
    on_delete: OnDeleteAction | None = None
    index: bool = False


class IndexDefinition(_Frozen):
    name: str
    columns: tuple[str, ...]
    unique: bool = False


class PolicyDefinition(_Frozen):
    """Row level security policy."""

    name: str
    operation: PolicyOperation
    check: str | None = None
    using: str | None = None


class TableDefinition(_Frozen):
    name: str = Field(..., min_length=1)
    description: str | None = None
    columns: tuple[ColumnDefinition, ...]
    indexes: tuple[IndexDefinition, ...] = ()
    policies: tuple[PolicyDefinition, ...] = ()


class RelationshipDefinition(_Frozen):
    from_column: str = Field(..., alias="from")
    to_column: str = Field(..., alias="to")
    type: RelationshipType

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class EnumDefinition(_Frozen):
    name: str
    values: tuple[str, ...]


class FunctionDefinition(_Frozen):
    name: str
    definition: str


class TriggerDefinition(_Frozen):
    name: str
    table: str
    event: Literal["INSERT", "UPDATE", "DELETE"]
    timing: Literal["BEFORE", "AFTER"]
    function: str


class DatabaseSchema(_Frozen):
    """Complete relational schema produced by the generator."""

    tables: tuple[TableDefinition, ...]
    relationships: tuple[RelationshipDefinition, ...] = ()
    enums: tuple[EnumDefinition, ...] = ()
    functions: tuple[FunctionDefinition, ...] = ()
    triggers: tuple[TriggerDefinition, ...] = ()


class ArtifactMetadata(_Frozen):
    model_config = ConfigDict(frozen=True, extra="forbid", protected_namespaces=())

    model_used: str | None = None
    description: str | None = None
    business_type: str | None = None
    features: tuple[str, ...] = ()


class SchemaArtifact(_Frozen):
    """Schema generated from a free-form prompt."""

    kind: Literal["schema"] = "schema"
    database_schema: DatabaseSchema
    sql: str = Field(..., min_length=1)
    metadata: ArtifactMetadata = ArtifactMetadata()


class TemplateArtifact(_Frozen):
    """Schema instantiated from a named starter/auth template."""

    kind: Literal["template"] = "template"
    template_slug: str = Field(..., min_length=1)
    database_schema: DatabaseSchema
    sql: str = Field(..., min_length=1)
    rls_policies: str = ""
    metadata: ArtifactMetadata = ArtifactMetadata()


Artifact = Annotated[Union[SchemaArtifact, TemplateArtifact], Field(discriminator="kind")]

ARTIFACT_ADAPTER: TypeAdapter[Artifact] = TypeAdapter(Artifact)


def parse_artifact(data: Any) -> SchemaArtifact | TemplateArtifact:
    """Validate an artifact instance or a plain mapping.

    A mapping without ``kind`` is read as a schema artifact.

    Raises:
        pydantic.ValidationError: If the payload does not match any artifact shape
    """
    if isinstance(data, (SchemaArtifact, TemplateArtifact)):
        return data
    if isinstance(data, dict) and "kind" not in data:
        data = {**data, "kind": "schema"}
    return ARTIFACT_ADAPTER.validate_python(data)


def dump_artifact(artifact: SchemaArtifact | TemplateArtifact) -> str:
    """Serialize an artifact to JSON text."""
    return ARTIFACT_ADAPTER.dump_json(artifact, by_alias=True).decode()


def load_artifact(payload: str | bytes) -> SchemaArtifact | TemplateArtifact:
    """Deserialize an artifact from JSON text."""
    return ARTIFACT_ADAPTER.validate_json(payload)
