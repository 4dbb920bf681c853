"""create_generation_tables

Revision ID: 3b9e1f2a7c4d
Revises:
Create Date: 2026-10-19 09:12:40.118204

"""

from typing import Sequence, Union

import sqlalchemy as sa
import sqlmodel

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9e1f2a7c4d"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

job_status = sa.Enum("PENDING", "RUNNING", "COMPLETED", "FAILED", "CANCELLED", name="jobstatus")
job_type = sa.Enum("IMAGE", "VIDEO", name="jobtype")
media_type = sa.Enum("IMAGE", "VIDEO", name="mediatype")
approval_status = sa.Enum("PENDING", "APPROVED", "REJECTED", name="approvalstatus")


def upgrade() -> None:
    """Create generation_jobs, generated_media, reference_images and storyboard_scenes."""
    op.create_table(
        "generation_jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("reference_set_id", sa.Uuid(), nullable=True),
        sa.Column("scene_id", sa.Uuid(), nullable=True),
        sa.Column("final_prompt", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("variation_count", sa.Integer(), nullable=False),
        sa.Column("resolution", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False),
        sa.Column("aspect_ratio", sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False),
        sa.Column(
            "generation_model", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False
        ),
        sa.Column("job_type", job_type, nullable=False),
        sa.Column("completed_count", sa.Integer(), nullable=False),
        sa.Column("failed_count", sa.Integer(), nullable=False),
        sa.Column("status", job_status, nullable=False),
        sa.Column("error_message", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_generation_jobs_product_id", "generation_jobs", ["product_id"])
    op.create_index("ix_generation_jobs_status", "generation_jobs", ["status"])

    op.create_table(
        "generated_media",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=True),
        sa.Column("variation_number", sa.Integer(), nullable=False),
        sa.Column("storage_path", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("thumb_storage_path", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("preview_storage_path", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("mime_type", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("media_type", media_type, nullable=False),
        sa.Column("approval_status", approval_status, nullable=False),
        sa.Column("scene_id", sa.Uuid(), nullable=True),
        sa.Column("scene_name", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["generation_jobs.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_generated_media_job_id", "generated_media", ["job_id"])
    op.create_index("ix_generated_media_scene_id", "generated_media", ["scene_id"])

    op.create_table(
        "reference_images",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("reference_set_id", sa.Uuid(), nullable=False),
        sa.Column("storage_path", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("file_name", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("mime_type", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_reference_images_reference_set_id", "reference_images", ["reference_set_id"]
    )

    op.create_table(
        "storyboard_scenes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column("motion_prompt", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column(
            "generation_model", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False
        ),
        sa.Column("start_frame_image_id", sa.Uuid(), nullable=True),
        sa.Column("end_frame_image_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_storyboard_scenes_product_id", "storyboard_scenes", ["product_id"])


def downgrade() -> None:
    """Drop all generation tables and enum types."""
    op.drop_index("ix_storyboard_scenes_product_id", table_name="storyboard_scenes")
    op.drop_table("storyboard_scenes")
    op.drop_index("ix_reference_images_reference_set_id", table_name="reference_images")
    op.drop_table("reference_images")
    op.drop_index("ix_generated_media_scene_id", table_name="generated_media")
    op.drop_index("ix_generated_media_job_id", table_name="generated_media")
    op.drop_table("generated_media")
    op.drop_index("ix_generation_jobs_status", table_name="generation_jobs")
    op.drop_index("ix_generation_jobs_product_id", table_name="generation_jobs")
    op.drop_table("generation_jobs")

    bind = op.get_bind()
    for enum in (approval_status, media_type, job_status, job_type):
        enum.drop(bind, checkfirst=True)
