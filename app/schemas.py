from datetime import date, datetime
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

from app import utils


class CamelModel(BaseModel):
    # the coordination API speaks camelCase; attributes stay snake_case
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class EquipmentType(str, Enum):
    TRUCK = "TRUCK"
    MANLIFT = "MANLIFT"
    FORKLIFT = "FORKLIFT"
    VAN = "VAN"
    EXCAVATOR = "EXCAVATOR"
    ROLLER = "ROLLER"
    DOZER = "DOZER"
    LOADER = "LOADER"
    CRANE = "CRANE"
    DRILL = "DRILL"
    GENERATOR = "GENERATOR"
    COMPRESSOR = "COMPRESSOR"
    WELDER = "WELDER"
    PUMP = "PUMP"
    OTHER = "OTHER"


class EquipmentStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    ASSIGNED = "ASSIGNED"
    MAINTENANCE = "MAINTENANCE"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"


class EquipmentState(str, Enum):
    AVAILABLE = "AVAILABLE"
    ASSIGNED = "ASSIGNED"
    MAINTENANCE = "MAINTENANCE"
    SERVICE_SCHEDULED = "SERVICE_SCHEDULED"
    MOVEMENT = "MOVEMENT"


class ServiceType(str, Enum):
    ROUTINE = "ROUTINE"
    REPAIR = "REPAIR"
    INSPECTION = "INSPECTION"


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class RequestType(str, Enum):
    ASSIGNMENT = "ASSIGNMENT"
    MOVEMENT = "MOVEMENT"


class LifecycleStage(str, Enum):
    ESTIMATION = "ESTIMATION"
    AWARDED = "AWARDED"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"
    LOST = "LOST"


class NoteType(str, Enum):
    GENERAL = "GENERAL"
    UPDATE = "UPDATE"
    SCHEDULE = "SCHEDULE"
    DELAY = "DELAY"
    MATERIAL = "MATERIAL"
    ISSUE = "ISSUE"


class FileCategory(str, Enum):
    FULL_MATERIAL_LIST = "FULL_MATERIAL_LIST"
    DRAWINGS_LINK = "DRAWINGS_LINK"
    SUBMITTALS = "SUBMITTALS"
    SCOPE_OF_WORK_CONTRACT = "SCOPE_OF_WORK_CONTRACT"
    JOB_SHEETS = "JOB_SHEETS"
    CHANGE_ORDERS = "CHANGE_ORDERS"
    SCO = "SCO"


# ISO timestamps from the API collapse to calendar dates
ApiDate = Annotated[date, BeforeValidator(utils.parse_any_date)]


# -------------------------
# Projects
# -------------------------
class PersonRef(CamelModel):
    id: int
    name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    initials: Optional[str] = None


class DashboardProject(CamelModel):
    id: int
    name: str
    address: Optional[str] = None
    project_type: Optional[str] = None
    lifecycle_stage: LifecycleStage
    field_manager: Optional[PersonRef] = None
    coordinator: Optional[PersonRef] = None
    builder: Optional[PersonRef] = None


class ProjectCreate(CamelModel):
    name: str
    exact_location: str
    lifecycle_stage: LifecycleStage = LifecycleStage.AWARDED
    project_type: Optional[str] = None
    client_name: Optional[str] = None
    notes: Optional[str] = None


class ProjectRename(CamelModel):
    name: str


class ProjectNote(CamelModel):
    id: int
    content: str
    type: NoteType
    image_urls: List[str] = []
    author: PersonRef
    created_at: datetime
    updated_at: Optional[datetime] = None
    is_edited: Optional[bool] = None


class NoteCreate(CamelModel):
    content: str
    type: NoteType = NoteType.GENERAL
    image_urls: List[str] = []


class ProjectFile(CamelModel):
    id: int
    project_id: int
    name: str
    url: str
    category: FileCategory
    file_type: Optional[str] = None
    size: Optional[str] = None
    uploaded_at: datetime
    uploaded_by: Optional[PersonRef] = None


class FileLinkCreate(CamelModel):
    name: str
    url: str
    category: FileCategory
    file_type: Optional[str] = None


class NextServiceRef(CamelModel):
    id: int
    type: str
    status: str
    scheduled_start: ApiDate
    scheduled_end: ApiDate


class ProjectEquipmentItem(CamelModel):
    assignment_id: int
    equipment_id: int
    equipment_name: str
    serial_code: Optional[str] = None
    type: str
    status: str
    delivery_date: ApiDate
    pickup_date: Optional[ApiDate] = None
    next_service: Optional[NextServiceRef] = None


# -------------------------
# Fleet
# -------------------------
class EquipmentAsset(CamelModel):
    id: int
    name: str
    serial_code: Optional[str] = None
    type: EquipmentType


class EquipmentCreate(CamelModel):
    name: str
    type: EquipmentType
    serial_code: Optional[str] = None
    status: EquipmentStatus = EquipmentStatus.AVAILABLE


class AssignmentEvent(CamelModel):
    id: int
    equipment_id: int
    project_id: int
    start_date: ApiDate
    end_date: Optional[ApiDate] = None


class ServiceEvent(CamelModel):
    id: int
    equipment_id: int
    scheduled_start: ApiDate
    scheduled_end: ApiDate
    type: ServiceType
    status: Optional[str] = None
    notes: Optional[str] = None


class MovementEvent(CamelModel):
    id: int
    equipment_id: int
    start_date: ApiDate
    from_project_id: Optional[int] = None
    to_project_id: Optional[int] = None
    notes: Optional[str] = None


class FleetEvents(CamelModel):
    assignments: List[AssignmentEvent] = []
    services: List[ServiceEvent] = []
    movements: List[MovementEvent] = []


class AssignmentCreate(CamelModel):
    project_id: Optional[int] = None
    start_date: Optional[ApiDate] = None
    end_date: Optional[ApiDate] = None
    auto_resolve: bool = True


class ServiceCreate(CamelModel):
    type: ServiceType = ServiceType.ROUTINE
    scheduled_start: Optional[ApiDate] = None
    scheduled_end: Optional[ApiDate] = None
    notes: Optional[str] = None
    auto_resolve: bool = True


class MovementCreate(CamelModel):
    start_date: Optional[ApiDate] = None
    from_project_id: Optional[int] = None
    to_project_id: Optional[int] = None
    notes: Optional[str] = None
    auto_resolve: bool = True


# -------------------------
# Requests
# -------------------------
class EquipmentRequest(CamelModel):
    id: int
    type: RequestType
    project_id: int
    requested_type: Optional[EquipmentType] = None
    equipment_id: Optional[int] = None
    start_date: ApiDate
    end_date: Optional[ApiDate] = None
    from_project_id: Optional[int] = None
    to_project_id: Optional[int] = None
    notes: Optional[str] = None
    status: RequestStatus
    requested_by: Optional[PersonRef] = None
    decided_by: Optional[PersonRef] = None
    decided_at: Optional[datetime] = None
    decision_note: Optional[str] = None
    assignment_id: Optional[int] = None


class ApprovePayload(CamelModel):
    equipment_id: Optional[int] = None
    start_date: Optional[ApiDate] = None
    end_date: Optional[ApiDate] = None
    from_project_id: Optional[int] = None
    to_project_id: Optional[int] = None
    decision_note: Optional[str] = None
    auto_resolve: bool = True


class RejectPayload(CamelModel):
    decision_note: Optional[str] = None
