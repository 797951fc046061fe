# nupci/models.py

# =================================================================================
# 🏛️ MODELOS ORM (SQLAlchemy)
# ---------------------------------------------------------------------------------
# Jerarquía multi-tenant:
#   MasterAdmin → WeddingPlanner → Wedding → Family → FamilyMember
# Cada boda tiene sus administradores (la pareja), sus plantillas de mensajes y
# sus eventos de seguimiento. Las claves primarias son UUID en texto.
# =================================================================================

import enum
import uuid

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    func,
    Enum as SQLAlchemyEnum,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship as orm_relationship

from nupci.db import Base
from nupci.utils.timeutils import utcnow


def _uuid() -> str:
    return str(uuid.uuid4())


# 🗂️ ENUMS
# ---------------------------------------------------------------------------------
class LanguageEnum(str, enum.Enum):
    ES = "ES"
    EN = "EN"
    FR = "FR"
    IT = "IT"
    DE = "DE"


class ChannelEnum(str, enum.Enum):
    WHATSAPP = "WHATSAPP"
    EMAIL = "EMAIL"
    SMS = "SMS"


class MemberTypeEnum(str, enum.Enum):
    ADULT = "ADULT"
    CHILD = "CHILD"
    INFANT = "INFANT"


class WeddingStatusEnum(str, enum.Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"
    COMPLETED = "COMPLETED"


class PaymentModeEnum(str, enum.Enum):
    AUTOMATED = "AUTOMATED"  # Se genera un código de referencia por familia.
    MANUAL = "MANUAL"


class EventTypeEnum(str, enum.Enum):
    LINK_OPENED = "LINK_OPENED"
    RSVP_STARTED = "RSVP_STARTED"
    RSVP_SUBMITTED = "RSVP_SUBMITTED"
    RSVP_UPDATED = "RSVP_UPDATED"
    GUEST_ADDED = "GUEST_ADDED"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    REMINDER_SENT = "REMINDER_SENT"
    INVITATION_SENT = "INVITATION_SENT"
    SAVE_THE_DATE_SENT = "SAVE_THE_DATE_SENT"


class TemplateTypeEnum(str, enum.Enum):
    INVITATION = "INVITATION"
    REMINDER = "REMINDER"
    CONFIRMATION = "CONFIRMATION"
    SAVE_THE_DATE = "SAVE_THE_DATE"


# 👑 ADMINISTRACIÓN DE LA PLATAFORMA
# ---------------------------------------------------------------------------------
class MasterAdmin(Base):
    __tablename__ = "master_admins"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(120), nullable=False)
    preferred_language = Column(SQLAlchemyEnum(LanguageEnum), nullable=False, default=LanguageEnum.ES)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)


class WeddingPlanner(Base):
    __tablename__ = "wedding_planners"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(120), nullable=False)
    preferred_language = Column(SQLAlchemyEnum(LanguageEnum), nullable=False, default=LanguageEnum.ES)
    enabled = Column(Boolean, nullable=False, default=True)  # Un planner deshabilitado no puede operar.
    created_by = Column(String(36), ForeignKey("master_admins.id", ondelete="SET NULL"), nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    weddings = orm_relationship("Wedding", back_populates="planner")
    themes = orm_relationship("Theme", back_populates="planner")


# 🎨 APARIENCIA DE LA PÁGINA RSVP
# ---------------------------------------------------------------------------------
class Theme(Base):
    __tablename__ = "themes"

    id = Column(String(36), primary_key=True, default=_uuid)
    planner_id = Column(String(36), ForeignKey("wedding_planners.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    is_system_theme = Column(Boolean, nullable=False, default=False)  # Disponible para todos los planners.
    config = Column(JSON, nullable=False, default=dict)
    preview_image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=utcnow, nullable=False)

    planner = orm_relationship("WeddingPlanner", back_populates="themes")


class InvitationTemplate(Base):
    __tablename__ = "invitation_templates"

    id = Column(String(36), primary_key=True, default=_uuid)
    planner_id = Column(String(36), ForeignKey("wedding_planners.id", ondelete="CASCADE"), nullable=True, index=True)
    name = Column(String(120), nullable=False)
    design = Column(JSON, nullable=False, default=dict)
    is_system_template = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=utcnow, nullable=False)


# 💍 BODAS
# ---------------------------------------------------------------------------------
class Wedding(Base):
    __tablename__ = "weddings"

    id = Column(String(36), primary_key=True, default=_uuid)
    planner_id = Column(String(36), ForeignKey("wedding_planners.id", ondelete="CASCADE"), nullable=False, index=True)
    theme_id = Column(String(36), ForeignKey("themes.id", ondelete="SET NULL"), nullable=True, index=True)
    invitation_template_id = Column(
        String(36), ForeignKey("invitation_templates.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # --- Datos del evento ---
    couple_names = Column(String(200), nullable=False)
    wedding_date = Column(DateTime, nullable=False)
    wedding_time = Column(String(20), nullable=False)
    location = Column(String(300), nullable=False)
    rsvp_cutoff_date = Column(DateTime, nullable=False)
    dress_code = Column(String(200), nullable=True)
    additional_info = Column(Text, nullable=True)
    wedding_country = Column(String(2), nullable=True)  # ISO-3166 alpha-2, para prefijos telefónicos.

    # --- Configuración ---
    payment_tracking_mode = Column(SQLAlchemyEnum(PaymentModeEnum), nullable=False, default=PaymentModeEnum.MANUAL)
    allow_guest_additions = Column(Boolean, nullable=False, default=True)
    save_the_date_enabled = Column(Boolean, nullable=False, default=False)
    default_language = Column(SQLAlchemyEnum(LanguageEnum), nullable=False, default=LanguageEnum.ES)
    status = Column(SQLAlchemyEnum(WeddingStatusEnum), nullable=False, default=WeddingStatusEnum.ACTIVE)
    is_disabled = Column(Boolean, nullable=False, default=False)
    short_url_initials = Column(String(10), unique=True, nullable=True)
    gift_iban = Column(String(64), nullable=True)

    # --- Preguntas opcionales del formulario RSVP ---
    transportation_question_enabled = Column(Boolean, nullable=False, default=False)
    transportation_question_text = Column(String(300), nullable=True)
    dietary_restrictions_enabled = Column(Boolean, nullable=False, default=True)
    extra_question_1_enabled = Column(Boolean, nullable=False, default=False)
    extra_question_1_text = Column(String(300), nullable=True)
    extra_question_2_enabled = Column(Boolean, nullable=False, default=False)
    extra_question_2_text = Column(String(300), nullable=True)
    extra_question_3_enabled = Column(Boolean, nullable=False, default=False)
    extra_question_3_text = Column(String(300), nullable=True)

    # --- Auditoría ---
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    created_by = Column(String(36), nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=utcnow, nullable=False)
    updated_by = Column(String(36), nullable=True)
    deleted_at = Column(DateTime, nullable=True)  # Borrado lógico.
    deleted_by = Column(String(36), nullable=True)

    planner = orm_relationship("WeddingPlanner", back_populates="weddings")
    theme = orm_relationship("Theme", lazy="joined")
    invitation_template = orm_relationship("InvitationTemplate", lazy="joined")
    admins = orm_relationship("WeddingAdmin", back_populates="wedding", cascade="all, delete-orphan")
    families = orm_relationship("Family", back_populates="wedding", cascade="all, delete-orphan")


class WeddingAdmin(Base):
    __tablename__ = "wedding_admins"
    __table_args__ = (UniqueConstraint("email", "wedding_id", name="uq_wedding_admins_email_wedding"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), index=True, nullable=False)
    name = Column(String(120), nullable=False)
    preferred_language = Column(SQLAlchemyEnum(LanguageEnum), nullable=False, default=LanguageEnum.ES)
    wedding_id = Column(String(36), ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    invited_by = Column(String(36), nullable=True)
    invited_at = Column(DateTime, server_default=func.now(), nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    wedding = orm_relationship("Wedding", back_populates="admins")


# 👨‍👩‍👧 INVITADOS (FAMILIA + MIEMBROS)
# ---------------------------------------------------------------------------------
class Family(Base):
    __tablename__ = "families"
    __table_args__ = (
        Index("ix_families_wedding_short_code", "wedding_id", "short_url_code", unique=True),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    wedding_id = Column(String(36), ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(32), nullable=True)
    whatsapp_number = Column(String(32), nullable=True)
    magic_token = Column(String(36), unique=True, nullable=True, index=True)  # NULL = enlace invalidado.
    reference_code = Column(String(16), nullable=True)
    channel_preference = Column(SQLAlchemyEnum(ChannelEnum), nullable=True)
    preferred_language = Column(SQLAlchemyEnum(LanguageEnum), nullable=False, default=LanguageEnum.ES)
    invited_by_admin_id = Column(String(36), ForeignKey("wedding_admins.id", ondelete="SET NULL"), nullable=True)
    private_notes = Column(Text, nullable=True)
    short_url_code = Column(String(8), nullable=True)
    save_the_date_sent = Column(DateTime, nullable=True)  # Primer envío del "reserva la fecha".

    # --- Respuestas a las preguntas opcionales ---
    transportation_answer = Column(Boolean, nullable=True)
    extra_question_1_answer = Column(Boolean, nullable=True)
    extra_question_2_answer = Column(Boolean, nullable=True)
    extra_question_3_answer = Column(Boolean, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    wedding = orm_relationship("Wedding", back_populates="families")
    members = orm_relationship(
        "FamilyMember",
        back_populates="family",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="[FamilyMember.created_at, FamilyMember.position]",
    )


class FamilyMember(Base):
    __tablename__ = "family_members"

    id = Column(String(36), primary_key=True, default=_uuid)
    family_id = Column(String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    type = Column(SQLAlchemyEnum(MemberTypeEnum), nullable=False, default=MemberTypeEnum.ADULT)
    attending = Column(Boolean, nullable=True)  # NULL = sin responder.
    age = Column(Integer, nullable=True)
    dietary_restrictions = Column(Text, nullable=True)
    accessibility_needs = Column(Text, nullable=True)
    added_by_guest = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False, default=0)  # Desempate de orden dentro de la misma familia.
    created_at = Column(DateTime, default=utcnow, nullable=False)

    family = orm_relationship("Family", back_populates="members")


# 📊 SEGUIMIENTO Y NOTIFICACIONES
# ---------------------------------------------------------------------------------
class TrackingEvent(Base):
    __tablename__ = "tracking_events"
    __table_args__ = (Index("ix_tracking_events_wedding_ts", "wedding_id", "timestamp"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    family_id = Column(String(36), ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True)
    wedding_id = Column(String(36), ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False)
    event_type = Column(SQLAlchemyEnum(EventTypeEnum), nullable=False, index=True)
    channel = Column(SQLAlchemyEnum(ChannelEnum), nullable=True)
    event_metadata = Column("metadata", JSON, nullable=True)
    admin_triggered = Column(Boolean, nullable=False, default=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    family = orm_relationship("Family", lazy="joined")


class NotificationRead(Base):
    __tablename__ = "notification_reads"
    __table_args__ = (UniqueConstraint("tracking_event_id", "admin_id", name="uq_notification_reads_event_admin"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    tracking_event_id = Column(String(36), ForeignKey("tracking_events.id", ondelete="CASCADE"), nullable=False, index=True)
    admin_id = Column(String(36), nullable=False, index=True)
    read_at = Column(DateTime, default=utcnow, nullable=False)


class MessageTemplate(Base):
    __tablename__ = "message_templates"
    __table_args__ = (
        UniqueConstraint("wedding_id", "type", "language", "channel", name="uq_message_templates_key"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    wedding_id = Column(String(36), ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(SQLAlchemyEnum(TemplateTypeEnum), nullable=False)
    language = Column(SQLAlchemyEnum(LanguageEnum), nullable=False)
    channel = Column(SQLAlchemyEnum(ChannelEnum), nullable=False)
    subject = Column(String(300), nullable=True)
    body = Column(Text, nullable=False)
    content_template_id = Column(String(64), nullable=True)  # Plantilla aprobada de WhatsApp (Twilio Content API).
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=utcnow, nullable=False)
