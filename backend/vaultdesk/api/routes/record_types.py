"""Record Type API Routes - Template catalog, field descriptors and value mapping"""
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_correlation_id_dep, get_schema_source
from ...domain.actions import list_actions
from ...domain.models import CustomField, FieldDescriptor, StoredSecretValue
from ...domain.record_templates import list_record_types
from ...engine.field_mapper import map_values_to_fields
from ...engine.template_compiler import NO_FIELDS_MESSAGE, compile_template
from ...services.vault_gateway import StaticSchemaSource
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================

class RecordTypeOption(BaseModel):
    """Selectable record type"""
    value: str
    label: str
    description: str = ""


class FieldsResponse(BaseModel):
    """Compiled descriptors for a record type"""
    record_type: str
    fields: List[FieldDescriptor] = Field(default_factory=list)
    fallback_message: Optional[str] = None


class MapValuesResponse(BaseModel):
    """Stored values mapped onto a record type's descriptors"""
    record_type: str
    fields: List[FieldDescriptor] = Field(default_factory=list)
    buffer: Dict[str, Any] = Field(default_factory=dict)
    custom_fields: List[CustomField] = Field(default_factory=list)
    fallback_message: Optional[str] = None


# ============================================================================
# Endpoints
# ============================================================================

@router.get("", response_model=List[RecordTypeOption])
async def get_record_types(
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """List the built-in record types"""
    return [RecordTypeOption(**option) for option in list_record_types()]


@router.get("/actions")
async def get_actions(
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """List the requestable vault actions with their static inputs"""
    return [definition.model_dump(mode="json") for definition in list_actions()]


@router.get("/{record_type}/fields", response_model=FieldsResponse)
async def get_record_type_fields(
    record_type: str,
    schema_source: StaticSchemaSource = Depends(get_schema_source),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Compile the field descriptors for a record type"""
    schema = await schema_source.fetch_schema(record_type)
    descriptors = compile_template(record_type, schema)
    return FieldsResponse(
        record_type=record_type,
        fields=descriptors,
        fallback_message=None if descriptors else NO_FIELDS_MESSAGE,
    )


@router.post("/{record_type}/map", response_model=MapValuesResponse)
async def map_record_values(
    record_type: str,
    stored: StoredSecretValue,
    schema_source: StaticSchemaSource = Depends(get_schema_source),
    correlation_id: str = Depends(get_correlation_id_dep)
):
    """Map an existing secret's values onto a record type's fields"""
    schema = await schema_source.fetch_schema(record_type)
    descriptors = compile_template(record_type, schema)
    result = map_values_to_fields(descriptors, stored, record_type)
    logger.info(
        f"Mapped {len(stored.all_entries())} entries, {len(result.custom_fields)} custom",
        extra={"record_type": record_type}
    )
    return MapValuesResponse(
        record_type=record_type,
        fields=descriptors,
        buffer=result.buffer,
        custom_fields=result.custom_fields,
        fallback_message=None if descriptors else NO_FIELDS_MESSAGE,
    )
