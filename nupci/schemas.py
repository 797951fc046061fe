# nupci/schemas.py

# =================================================================================
# 📦 Schemas (MODELOS DE DATOS Pydantic v2)
# ---------------------------------------------------------------------------------
# - Validan la entrada (tipos, longitudes, reglas de negocio simples).
# - Serializan objetos ORM a JSON (from_attributes=True, enums como texto).
# - Las reglas que necesitan la BD (propiedad, duplicados) viven en crud/services.
# =================================================================================

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    BaseModel,
    EmailStr,
    field_validator,
    model_validator,
    ConfigDict,
    Field,
)

from nupci.models import (
    ChannelEnum,
    EventTypeEnum,
    LanguageEnum,
    MemberTypeEnum,
    PaymentModeEnum,
    TemplateTypeEnum,
    WeddingStatusEnum,
)
from nupci.config import BULK_MAX_FAMILIES
from nupci.utils.timeutils import as_naive_utc

ReminderChannel = Literal["WHATSAPP", "EMAIL", "SMS", "PREFERRED"]


def _strip_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# =================================================================================
# 👥 Miembros de familia
# =================================================================================
class MemberIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    type: MemberTypeEnum = MemberTypeEnum.ADULT
    age: Optional[int] = Field(default=None, ge=0, le=150)   # Edad opcional; útil para menús infantiles.
    attending: Optional[bool] = None
    dietary_restrictions: Optional[str] = None
    accessibility_needs: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El nombre del miembro es obligatorio")
        return v


class MemberUpdateIn(BaseModel):
    """Operación sobre un miembro dentro de un update de familia: crear, editar o borrar."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: Optional[str] = Field(default=None, max_length=120)
    type: Optional[MemberTypeEnum] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    attending: Optional[bool] = None
    dietary_restrictions: Optional[str] = None
    accessibility_needs: Optional[str] = None
    delete: bool = Field(default=False, alias="_delete")   # Marca el miembro para borrarlo.

    @model_validator(mode="after")
    def _check_operation(self):
        if self.delete and not self.id:
            raise ValueError("_delete requiere el id del miembro")
        if not self.id and not (self.name and self.name.strip()):
            raise ValueError("Los miembros nuevos necesitan nombre")
        if self.name is not None:
            self.name = self.name.strip()
        return self


class MemberOut(ORMModel):
    id: str
    name: str
    type: MemberTypeEnum
    attending: Optional[bool] = None
    age: Optional[int] = None
    dietary_restrictions: Optional[str] = None
    accessibility_needs: Optional[str] = None
    added_by_guest: bool = False
    created_at: datetime


class GuestAdditionOut(MemberOut):
    family_id: str
    family_name: str
    is_new: bool = True                                      # Aún no revisado por quien consulta.


class GuestAdditionListResponse(BaseModel):
    feature_enabled: bool
    items: List[GuestAdditionOut] = []
    total: int = 0
    new_count: int = 0


class GuestAdditionReview(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    type: Optional[MemberTypeEnum] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    mark_reviewed: bool = False

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("El nombre del miembro es obligatorio")
        return v


# =================================================================================
# 👨‍👩‍👧 Familias (gestión desde el panel)
# =================================================================================
class FamilyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    channel_preference: Optional[ChannelEnum] = None
    preferred_language: Optional[LanguageEnum] = None
    invited_by_admin_id: Optional[str] = None   # Qué miembro de la pareja invita.
    private_notes: Optional[str] = None   # Solo visibles en el panel.
    members: List[MemberIn] = Field(min_length=1)   # Al menos un miembro por familia.

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("El nombre de la familia es obligatorio")
        return v

    @field_validator("phone", "whatsapp_number", "private_notes", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        return _strip_or_none(v) if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email(cls, v):
        return _strip_or_none(v) if isinstance(v, str) else v


class FamilyUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    channel_preference: Optional[ChannelEnum] = None
    preferred_language: Optional[LanguageEnum] = None
    invited_by_admin_id: Optional[str] = None
    private_notes: Optional[str] = None
    members: Optional[List[MemberUpdateIn]] = None

    @field_validator("email", "phone", "whatsapp_number", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        return _strip_or_none(v) if isinstance(v, str) else v


class FamilyOut(ORMModel):
    id: str
    wedding_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    magic_token: Optional[str] = None
    reference_code: Optional[str] = None
    channel_preference: Optional[ChannelEnum] = None
    preferred_language: LanguageEnum
    invited_by_admin_id: Optional[str] = None
    private_notes: Optional[str] = None
    short_url_code: Optional[str] = None
    save_the_date_sent: Optional[datetime] = None
    transportation_answer: Optional[bool] = None
    extra_question_1_answer: Optional[bool] = None
    extra_question_2_answer: Optional[bool] = None
    extra_question_3_answer: Optional[bool] = None
    created_at: datetime
    members: List[MemberOut] = []


class FamilyListItem(FamilyOut):
    rsvp_status: str = "pending"
    attending_count: int = 0
    not_attending_count: int = 0
    pending_count: int = 0


class WeddingStats(BaseModel):
    total_families: int = 0
    total_members: int = 0
    attending: int = 0
    not_attending: int = 0
    pending: int = 0
    families_responded: int = 0
    families_pending: int = 0
    adults: int = 0
    children: int = 0
    infants: int = 0


class FamilyListResponse(BaseModel):
    items: List[FamilyListItem]
    total: int
    page: int
    limit: int
    total_pages: int
    stats: WeddingStats


class FamilyDeleteResult(BaseModel):
    success: bool = True
    had_rsvp: bool
    deleted_members: int


class MagicLinkOut(BaseModel):
    family_id: str
    magic_token: str
    url: str
    short_url: Optional[str] = None


# =================================================================================
# 📦 Operaciones masivas
# =================================================================================
def _unique_ids(ids: List[str]) -> List[str]:
    if len(set(ids)) != len(ids):
        raise ValueError("family_ids no puede contener ids repetidos")
    return ids


class BulkUpdateChanges(BaseModel):
    preferred_language: Optional[LanguageEnum] = None
    channel_preference: Optional[ChannelEnum] = None
    invited_by_admin_id: Optional[str] = None
    set_all_attending: Optional[bool] = None
    set_all_not_attending: Optional[bool] = None

    @model_validator(mode="after")
    def _check_changes(self):
        if not self.model_fields_set:
            raise ValueError("Debes indicar al menos un campo a actualizar")
        if self.set_all_attending and self.set_all_not_attending:
            raise ValueError("set_all_attending y set_all_not_attending no pueden ser ambos true")
        if "preferred_language" in self.model_fields_set and self.preferred_language is None:
            raise ValueError("preferred_language no puede ser null")
        return self


class BulkUpdateRequest(BaseModel):
    family_ids: List[str] = Field(min_length=1, max_length=BULK_MAX_FAMILIES)
    updates: BulkUpdateChanges

    @field_validator("family_ids")
    @classmethod
    def _unique(cls, v: List[str]) -> List[str]:
        return _unique_ids(v)


class BulkUpdateResult(BaseModel):
    success: bool = True
    updated_families: int
    updated_members: int


class BulkDeleteRequest(BaseModel):
    family_ids: List[str] = Field(min_length=1, max_length=BULK_MAX_FAMILIES)

    @field_validator("family_ids")
    @classmethod
    def _unique(cls, v: List[str]) -> List[str]:
        return _unique_ids(v)


class BulkDeleteResult(BaseModel):
    success: bool = True
    deleted_count: int
    deleted_members: int


class DeleteAllResult(BaseModel):
    success: bool = True
    deleted_families: int
    deleted_members: int


# =================================================================================
# 📥 Importación
# =================================================================================
class RowIssue(BaseModel):
    row: int
    field: Optional[str] = None
    message: str


class ImportResult(BaseModel):
    success: bool
    families_created: int = 0
    members_created: int = 0
    errors: List[RowIssue] = []
    warnings: List[RowIssue] = []


class VCFImportResult(BaseModel):
    success: bool
    total_contacts: int = 0
    families_created: int = 0
    skipped_duplicates: int = 0
    errors: List[str] = []


# =================================================================================
# 💌 Invitado (enlace mágico)
# =================================================================================
class RSVPMemberIn(BaseModel):
    id: str
    attending: bool
    dietary_restrictions: Optional[str] = None
    accessibility_needs: Optional[str] = None


class RSVPSubmitRequest(BaseModel):
    members: List[RSVPMemberIn] = Field(min_length=1)
    transportation_answer: Optional[bool] = None   # Solo si la boda pregunta por transporte.
    extra_question_1_answer: Optional[bool] = None
    extra_question_2_answer: Optional[bool] = None
    extra_question_3_answer: Optional[bool] = None

    @model_validator(mode="after")
    def _unique_members(self):
        ids = [m.id for m in self.members]
        if len(ids) != len(set(ids)):
            raise ValueError("Cada miembro solo puede aparecer una vez")
        return self


class RSVPSubmitResponse(BaseModel):
    success: bool = True
    message: str
    attending_count: int


class GuestAddMemberRequest(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    type: MemberTypeEnum
    age: Optional[int] = Field(default=None, ge=0, le=150)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class LanguageUpdateRequest(BaseModel):
    language: LanguageEnum


class LanguageUpdateResponse(BaseModel):
    success: bool = True
    preferred_language: LanguageEnum


class GuestLookupRequest(BaseModel):
    initials: str = Field(min_length=1, max_length=10)   # Iniciales de la boda, p. ej. "LJ".
    contact: str = Field(min_length=3, max_length=255)   # Email o teléfono del invitado.


class GuestLookupResponse(BaseModel):
    found: bool
    url: Optional[str] = None


class FamilyGuestView(ORMModel):
    """Lo que ve el invitado de su familia (sin notas privadas ni datos del panel)."""
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    preferred_language: LanguageEnum
    channel_preference: Optional[ChannelEnum] = None
    reference_code: Optional[str] = None
    transportation_answer: Optional[bool] = None
    extra_question_1_answer: Optional[bool] = None
    extra_question_2_answer: Optional[bool] = None
    extra_question_3_answer: Optional[bool] = None
    members: List[MemberOut] = []


class RSVPPageResponse(BaseModel):
    family: FamilyGuestView
    wedding: Dict[str, Any]
    theme: Dict[str, Any]
    invitation_template: Optional[Dict[str, Any]] = None
    rsvp_cutoff_passed: bool
    has_submitted_rsvp: bool


# =================================================================================
# 💍 Bodas, administradores y planners
# =================================================================================
class WeddingBase(BaseModel):
    dress_code: Optional[str] = None
    additional_info: Optional[str] = None
    theme_id: Optional[str] = None
    wedding_country: Optional[str] = Field(default=None, min_length=2, max_length=2)
    gift_iban: Optional[str] = None
    transportation_question_text: Optional[str] = None
    extra_question_1_text: Optional[str] = None
    extra_question_2_text: Optional[str] = None
    extra_question_3_text: Optional[str] = None

    @field_validator("wedding_country")
    @classmethod
    def _upper_country(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class WeddingCreate(WeddingBase):
    couple_names: str = Field(min_length=1, max_length=200)
    wedding_date: datetime
    wedding_time: str = Field(min_length=1, max_length=20)
    location: str = Field(min_length=1, max_length=300)
    rsvp_cutoff_date: datetime
    payment_tracking_mode: PaymentModeEnum = PaymentModeEnum.MANUAL
    allow_guest_additions: bool = True
    save_the_date_enabled: bool = False
    default_language: LanguageEnum = LanguageEnum.ES
    transportation_question_enabled: bool = False
    dietary_restrictions_enabled: bool = True
    extra_question_1_enabled: bool = False
    extra_question_2_enabled: bool = False
    extra_question_3_enabled: bool = False

    @field_validator("wedding_date", "rsvp_cutoff_date")
    @classmethod
    def _naive_utc(cls, v: datetime) -> datetime:
        return as_naive_utc(v)

    @model_validator(mode="after")
    def _cutoff_before_wedding(self):
        if self.rsvp_cutoff_date > self.wedding_date:
            raise ValueError("La fecha límite de RSVP debe ser anterior a la boda")
        return self


class WeddingUpdate(WeddingBase):
    couple_names: Optional[str] = Field(default=None, min_length=1, max_length=200)
    wedding_date: Optional[datetime] = None
    wedding_time: Optional[str] = Field(default=None, min_length=1, max_length=20)
    location: Optional[str] = Field(default=None, min_length=1, max_length=300)
    rsvp_cutoff_date: Optional[datetime] = None
    payment_tracking_mode: Optional[PaymentModeEnum] = None
    allow_guest_additions: Optional[bool] = None
    save_the_date_enabled: Optional[bool] = None
    default_language: Optional[LanguageEnum] = None
    status: Optional[WeddingStatusEnum] = None
    is_disabled: Optional[bool] = None
    transportation_question_enabled: Optional[bool] = None
    dietary_restrictions_enabled: Optional[bool] = None
    extra_question_1_enabled: Optional[bool] = None
    extra_question_2_enabled: Optional[bool] = None
    extra_question_3_enabled: Optional[bool] = None

    @field_validator("wedding_date", "rsvp_cutoff_date")
    @classmethod
    def _naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(v)


class WeddingOut(ORMModel):
    id: str
    planner_id: str
    theme_id: Optional[str] = None
    invitation_template_id: Optional[str] = None
    couple_names: str
    wedding_date: datetime
    wedding_time: str
    location: str
    rsvp_cutoff_date: datetime
    dress_code: Optional[str] = None
    additional_info: Optional[str] = None
    wedding_country: Optional[str] = None
    payment_tracking_mode: PaymentModeEnum
    allow_guest_additions: bool
    save_the_date_enabled: bool = False
    default_language: LanguageEnum
    status: WeddingStatusEnum
    is_disabled: bool
    short_url_initials: Optional[str] = None
    gift_iban: Optional[str] = None
    transportation_question_enabled: bool
    transportation_question_text: Optional[str] = None
    dietary_restrictions_enabled: bool
    extra_question_1_enabled: bool
    extra_question_1_text: Optional[str] = None
    extra_question_2_enabled: bool
    extra_question_2_text: Optional[str] = None
    extra_question_3_enabled: bool
    extra_question_3_text: Optional[str] = None
    created_at: datetime
    deleted_at: Optional[datetime] = None


class WeddingWithStats(WeddingOut):
    stats: WeddingStats = Field(default_factory=WeddingStats)
    planner_name: Optional[str] = None


class WeddingAdminCreate(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=120)
    preferred_language: LanguageEnum = LanguageEnum.ES


class WeddingAdminOut(ORMModel):
    id: str
    email: str
    name: str
    preferred_language: LanguageEnum
    wedding_id: str
    invited_at: datetime
    accepted_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class PlannerCreate(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=120)
    preferred_language: LanguageEnum = LanguageEnum.ES


class PlannerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    enabled: Optional[bool] = None
    preferred_language: Optional[LanguageEnum] = None


class PlannerOut(ORMModel):
    id: str
    email: str
    name: str
    preferred_language: LanguageEnum
    enabled: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime
    wedding_count: int = 0


class MasterAdminCreate(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=120)
    preferred_language: LanguageEnum = LanguageEnum.ES


class MasterAdminOut(ORMModel):
    id: str
    email: str
    name: str
    preferred_language: LanguageEnum


class PlatformAnalytics(BaseModel):
    planners: int
    active_planners: int
    weddings: int
    active_weddings: int
    families: int
    members: int
    attending: int
    rsvp_response_rate: float


# =================================================================================
# 🎨 Temas y plantillas de invitación
# =================================================================================
class ThemeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    preview_image_url: Optional[str] = None
    is_default: bool = False


class ThemeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    config: Optional[Dict[str, Any]] = None
    preview_image_url: Optional[str] = None
    is_default: Optional[bool] = None


class ThemeOut(ORMModel):
    id: str
    planner_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    is_default: bool
    is_system_theme: bool
    config: Dict[str, Any]
    preview_image_url: Optional[str] = None


class InvitationTemplateIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    design: Dict[str, Any] = Field(default_factory=dict)


class InvitationTemplateOut(ORMModel):
    id: str
    name: str
    design: Dict[str, Any]
    is_system_template: bool
    updated_at: datetime


# =================================================================================
# ✉️ Plantillas de mensajes
# =================================================================================
class MessageTemplateUpsert(BaseModel):
    type: TemplateTypeEnum
    language: LanguageEnum
    channel: ChannelEnum
    subject: Optional[str] = Field(default=None, max_length=300)
    body: str = Field(min_length=1)
    content_template_id: Optional[str] = None
    image_url: Optional[str] = None

    @model_validator(mode="after")
    def _email_needs_subject(self):
        if self.channel == ChannelEnum.EMAIL and not (self.subject and self.subject.strip()):
            raise ValueError("Las plantillas de email necesitan asunto")
        return self


class MessageTemplateOut(ORMModel):
    id: Optional[str] = None
    type: TemplateTypeEnum
    language: LanguageEnum
    channel: ChannelEnum
    subject: Optional[str] = None
    body: str
    content_template_id: Optional[str] = None
    image_url: Optional[str] = None
    is_default: bool = False


class TemplatePreviewRequest(BaseModel):
    body: str = Field(min_length=1)
    subject: Optional[str] = None
    language: Optional[LanguageEnum] = None
    family_id: Optional[str] = None


class TemplatePreviewResponse(BaseModel):
    subject: Optional[str] = None
    body: str
    placeholders: List[str]
    unknown_placeholders: List[str]


# =================================================================================
# 🔔 Recordatorios e invitaciones
# =================================================================================
class ReminderValidateRequest(BaseModel):
    channel: ReminderChannel
    family_ids: Optional[List[str]] = None


class ReminderFamily(BaseModel):
    id: str
    name: str
    channel: Optional[str] = None
    missing_info: Optional[str] = None


class ReminderValidateSummary(BaseModel):
    total: int
    valid: int
    invalid: int


class ReminderValidateResponse(BaseModel):
    valid_families: List[ReminderFamily]
    invalid_families: List[ReminderFamily]
    summary: ReminderValidateSummary


class ReminderSendRequest(BaseModel):
    channel: ReminderChannel
    message_template: Optional[str] = None
    family_ids: Optional[List[str]] = None


class DispatchOutcome(BaseModel):
    family_id: str
    family_name: str
    channel: Optional[str] = None
    success: bool
    message_type: str
    error: Optional[str] = None


class DispatchSummary(BaseModel):
    sent_count: int
    failed_count: int
    skipped_count: int
    recipient_families: List[str] = []                     # Ids de las familias a las que se envió.
    results: List[DispatchOutcome]


class ReminderPreviewRequest(BaseModel):
    language: LanguageEnum = LanguageEnum.ES
    channel: ChannelEnum = ChannelEnum.EMAIL
    message_template: Optional[str] = None


class ReminderPreviewResponse(BaseModel):
    subject: Optional[str] = None
    body: str


class InvitationSendRequest(BaseModel):
    family_ids: Optional[List[str]] = None
    channel: Optional[ReminderChannel] = None


# =================================================================================
# 🔔 Notificaciones (eventos de seguimiento)
# =================================================================================
class NotificationOut(BaseModel):
    id: str
    family_id: str
    family_name: Optional[str] = None
    event_type: EventTypeEnum
    channel: Optional[ChannelEnum] = None
    metadata: Optional[Dict[str, Any]] = None
    admin_triggered: bool
    timestamp: datetime
    read: bool

    model_config = ConfigDict(use_enum_values=True)


class NotificationListResponse(BaseModel):
    items: List[NotificationOut]
    total: int
    page: int
    limit: int
    total_pages: int
    unread_count: int


class MarkReadRequest(BaseModel):
    ids: Optional[List[str]] = None
    all: bool = False

    @model_validator(mode="after")
    def _ids_or_all(self):
        if not self.all and not self.ids:
            raise ValueError("Indica ids o all=true")
        return self


class MarkReadResponse(BaseModel):
    marked: int


class UnreadCountResponse(BaseModel):
    unread_count: int


# =================================================================================
# 📊 Informes
# =================================================================================
class MemberNote(BaseModel):
    family_name: str
    member_name: str
    note: str


class ReportSummary(BaseModel):
    stats: WeddingStats
    average_age: Optional[float] = None
    transportation_yes: int = 0
    added_by_guests: int = 0
    dietary_restrictions: List[MemberNote] = []
    accessibility_needs: List[MemberNote] = []


# =================================================================================
# 🔐 Autenticación del personal
# =================================================================================
class RequestAccessPayload(BaseModel):
    email: EmailStr
    lang: Optional[str] = None


class RequestAccessResponse(BaseModel):
    ok: bool = True
    message: str


class LoginLinkPayload(BaseModel):
    token: str = Field(min_length=10)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    wedding_id: Optional[str] = None
    expires_in: int


class MeResponse(BaseModel):
    id: str
    role: str
    email: str
    name: str
    wedding_id: Optional[str] = None
    preferred_language: str
