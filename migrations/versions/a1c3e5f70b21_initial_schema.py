"""initial multi-tenant schema

Revision ID: a1c3e5f70b21
Revises: 
Create Date: 2026-10-18 10:12:41.203118

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f70b21'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Tipos ENUM nativos en PostgreSQL (en SQLite se quedan en VARCHAR).
# Se crean una sola vez aquí; las tablas los referencian con create_type=False.
language_enum = postgresql.ENUM("ES", "EN", "FR", "IT", "DE", name="languageenum", create_type=False)
channel_enum = postgresql.ENUM("WHATSAPP", "EMAIL", "SMS", name="channelenum", create_type=False)
member_type_enum = postgresql.ENUM("ADULT", "CHILD", "INFANT", name="membertypeenum", create_type=False)
wedding_status_enum = postgresql.ENUM("ACTIVE", "ARCHIVED", "COMPLETED", name="weddingstatusenum", create_type=False)
payment_mode_enum = postgresql.ENUM("AUTOMATED", "MANUAL", name="paymentmodeenum", create_type=False)
event_type_enum = postgresql.ENUM(
    "LINK_OPENED", "RSVP_STARTED", "RSVP_SUBMITTED", "RSVP_UPDATED", "GUEST_ADDED",
    "PAYMENT_RECEIVED", "REMINDER_SENT", "INVITATION_SENT",
    name="eventtypeenum", create_type=False,
)
template_type_enum = postgresql.ENUM("INVITATION", "REMINDER", "CONFIRMATION", name="templatetypeenum", create_type=False)

ALL_ENUMS = (
    language_enum, channel_enum, member_type_enum, wedding_status_enum,
    payment_mode_enum, event_type_enum, template_type_enum,
)


def upgrade() -> None:
    """Create every table of the platform: staff, weddings, families and tracking."""
    bind = op.get_bind()
    for enum_type in ALL_ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "master_admins",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("preferred_language", language_enum, nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_master_admins_email", "master_admins", ["email"], unique=True)

    op.create_table(
        "wedding_planners",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("preferred_language", language_enum, nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=36),
                  sa.ForeignKey("master_admins.id", ondelete="SET NULL"), nullable=True),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_wedding_planners_email", "wedding_planners", ["email"], unique=True)

    op.create_table(
        "themes",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("planner_id", sa.String(length=36),
                  sa.ForeignKey("wedding_planners.id", ondelete="CASCADE"), nullable=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("is_system_theme", sa.Boolean(), nullable=False),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column("preview_image_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_themes_planner_id", "themes", ["planner_id"])

    op.create_table(
        "invitation_templates",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("planner_id", sa.String(length=36),
                  sa.ForeignKey("wedding_planners.id", ondelete="CASCADE"), nullable=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("design", sa.JSON(), nullable=False),
        sa.Column("is_system_template", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_invitation_templates_planner_id", "invitation_templates", ["planner_id"])

    op.create_table(
        "weddings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("planner_id", sa.String(length=36),
                  sa.ForeignKey("wedding_planners.id", ondelete="CASCADE"), nullable=False),
        sa.Column("theme_id", sa.String(length=36),
                  sa.ForeignKey("themes.id", ondelete="SET NULL"), nullable=True),
        sa.Column("invitation_template_id", sa.String(length=36),
                  sa.ForeignKey("invitation_templates.id", ondelete="SET NULL"), nullable=True),
        sa.Column("couple_names", sa.String(length=200), nullable=False),
        sa.Column("wedding_date", sa.DateTime(), nullable=False),
        sa.Column("wedding_time", sa.String(length=20), nullable=False),
        sa.Column("location", sa.String(length=300), nullable=False),
        sa.Column("rsvp_cutoff_date", sa.DateTime(), nullable=False),
        sa.Column("dress_code", sa.String(length=200), nullable=True),
        sa.Column("additional_info", sa.Text(), nullable=True),
        sa.Column("wedding_country", sa.String(length=2), nullable=True),
        sa.Column("payment_tracking_mode", payment_mode_enum, nullable=False),
        sa.Column("allow_guest_additions", sa.Boolean(), nullable=False),
        sa.Column("default_language", language_enum, nullable=False),
        sa.Column("status", wedding_status_enum, nullable=False),
        sa.Column("is_disabled", sa.Boolean(), nullable=False),
        sa.Column("short_url_initials", sa.String(length=10), nullable=True, unique=True),
        sa.Column("gift_iban", sa.String(length=64), nullable=True),
        sa.Column("transportation_question_enabled", sa.Boolean(), nullable=False),
        sa.Column("transportation_question_text", sa.String(length=300), nullable=True),
        sa.Column("dietary_restrictions_enabled", sa.Boolean(), nullable=False),
        sa.Column("extra_question_1_enabled", sa.Boolean(), nullable=False),
        sa.Column("extra_question_1_text", sa.String(length=300), nullable=True),
        sa.Column("extra_question_2_enabled", sa.Boolean(), nullable=False),
        sa.Column("extra_question_2_text", sa.String(length=300), nullable=True),
        sa.Column("extra_question_3_enabled", sa.Boolean(), nullable=False),
        sa.Column("extra_question_3_text", sa.String(length=300), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("created_by", sa.String(length=36), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_by", sa.String(length=36), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("deleted_by", sa.String(length=36), nullable=True),
    )
    op.create_index("ix_weddings_planner_id", "weddings", ["planner_id"])
    op.create_index("ix_weddings_theme_id", "weddings", ["theme_id"])
    op.create_index("ix_weddings_invitation_template_id", "weddings", ["invitation_template_id"])

    op.create_table(
        "wedding_admins",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("preferred_language", language_enum, nullable=False),
        sa.Column("wedding_id", sa.String(length=36),
                  sa.ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("invited_by", sa.String(length=36), nullable=True),
        sa.Column("invited_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("accepted_at", sa.DateTime(), nullable=True),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("email", "wedding_id", name="uq_wedding_admins_email_wedding"),
    )
    op.create_index("ix_wedding_admins_email", "wedding_admins", ["email"])
    op.create_index("ix_wedding_admins_wedding_id", "wedding_admins", ["wedding_id"])

    op.create_table(
        "families",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("wedding_id", sa.String(length=36),
                  sa.ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("whatsapp_number", sa.String(length=32), nullable=True),
        sa.Column("magic_token", sa.String(length=36), nullable=True),
        sa.Column("reference_code", sa.String(length=16), nullable=True),
        sa.Column("channel_preference", channel_enum, nullable=True),
        sa.Column("preferred_language", language_enum, nullable=False),
        sa.Column("invited_by_admin_id", sa.String(length=36),
                  sa.ForeignKey("wedding_admins.id", ondelete="SET NULL"), nullable=True),
        sa.Column("private_notes", sa.Text(), nullable=True),
        sa.Column("short_url_code", sa.String(length=8), nullable=True),
        sa.Column("transportation_answer", sa.Boolean(), nullable=True),
        sa.Column("extra_question_1_answer", sa.Boolean(), nullable=True),
        sa.Column("extra_question_2_answer", sa.Boolean(), nullable=True),
        sa.Column("extra_question_3_answer", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_families_wedding_id", "families", ["wedding_id"])
    op.create_index("ix_families_email", "families", ["email"])
    op.create_index("ix_families_magic_token", "families", ["magic_token"], unique=True)
    op.create_index("ix_families_wedding_short_code", "families", ["wedding_id", "short_url_code"], unique=True)

    op.create_table(
        "family_members",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("family_id", sa.String(length=36),
                  sa.ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("type", member_type_enum, nullable=False),
        sa.Column("attending", sa.Boolean(), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("dietary_restrictions", sa.Text(), nullable=True),
        sa.Column("accessibility_needs", sa.Text(), nullable=True),
        sa.Column("added_by_guest", sa.Boolean(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_family_members_family_id", "family_members", ["family_id"])

    op.create_table(
        "tracking_events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("family_id", sa.String(length=36),
                  sa.ForeignKey("families.id", ondelete="CASCADE"), nullable=False),
        sa.Column("wedding_id", sa.String(length=36),
                  sa.ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_type", event_type_enum, nullable=False),
        sa.Column("channel", channel_enum, nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("admin_triggered", sa.Boolean(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tracking_events_family_id", "tracking_events", ["family_id"])
    op.create_index("ix_tracking_events_event_type", "tracking_events", ["event_type"])
    op.create_index("ix_tracking_events_wedding_ts", "tracking_events", ["wedding_id", "timestamp"])

    op.create_table(
        "notification_reads",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("tracking_event_id", sa.String(length=36),
                  sa.ForeignKey("tracking_events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("admin_id", sa.String(length=36), nullable=False),
        sa.Column("read_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("tracking_event_id", "admin_id", name="uq_notification_reads_event_admin"),
    )
    op.create_index("ix_notification_reads_tracking_event_id", "notification_reads", ["tracking_event_id"])
    op.create_index("ix_notification_reads_admin_id", "notification_reads", ["admin_id"])

    op.create_table(
        "message_templates",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("wedding_id", sa.String(length=36),
                  sa.ForeignKey("weddings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", template_type_enum, nullable=False),
        sa.Column("language", language_enum, nullable=False),
        sa.Column("channel", channel_enum, nullable=False),
        sa.Column("subject", sa.String(length=300), nullable=True),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("content_template_id", sa.String(length=64), nullable=True),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("wedding_id", "type", "language", "channel", name="uq_message_templates_key"),
    )
    op.create_index("ix_message_templates_wedding_id", "message_templates", ["wedding_id"])


def downgrade() -> None:
    """Drop every table (children first) and the ENUM types."""
    for table in (
        "message_templates", "notification_reads", "tracking_events", "family_members",
        "families", "wedding_admins", "weddings", "invitation_templates", "themes",
        "wedding_planners", "master_admins",
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(bind, checkfirst=True)
