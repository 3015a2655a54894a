"""create lao tables

Revision ID: 20261016_0001
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261016_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "branches",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("cnpj", sa.String(length=18), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=128), nullable=True),
        sa.Column("state", sa.String(length=2), nullable=True),
        sa.Column("contact", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=24), server_default=sa.text("'Ativa'"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_branches_name", "branches", ["name"], unique=False)

    op.create_table(
        "license_types",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("renewal_protocol_days", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("process_start_days", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "laos",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("lao_number", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("empreendimento", sa.String(length=255), nullable=False),
        sa.Column("branch_id", sa.String(length=36), nullable=True),
        sa.Column("category", sa.String(length=24), server_default=sa.text("'Ambiental'"), nullable=False),
        sa.Column("process_number", sa.String(length=128), nullable=True),
        sa.Column("fcei", sa.String(length=128), nullable=True),
        sa.Column("codam", sa.String(length=128), nullable=True),
        sa.Column("issue_date", sa.String(length=64), nullable=True),
        sa.Column("validity_date", sa.String(length=64), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("attachments", sa.JSON(), nullable=True),
        sa.Column("active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_laos_branch_id", "laos", ["branch_id"], unique=False)
    op.create_index("ix_laos_lao_number", "laos", ["lao_number"], unique=False)
    op.create_index("ix_laos_validity_date", "laos", ["validity_date"], unique=False)

    op.create_table(
        "lao_conditions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("lao_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=512), nullable=False),
        sa.Column("frequency_preset", sa.String(length=16), server_default=sa.text("'anual'"), nullable=False),
        sa.Column("custom_months_interval", sa.Integer(), nullable=True),
        sa.Column("last_inspection_date", sa.String(length=10), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["lao_id"], ["laos.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_lao_conditions_lao_id", "lao_conditions", ["lao_id"], unique=False)

    op.create_table(
        "lao_inspections",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("lao_id", sa.String(length=36), nullable=False),
        sa.Column("condition_id", sa.String(length=36), nullable=False),
        sa.Column("inspection_date", sa.String(length=10), nullable=False),
        sa.Column("note", sa.String(length=1000), nullable=True),
        sa.Column("source", sa.String(length=16), server_default=sa.text("'manual'"), nullable=False),
        sa.Column("created_by", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["lao_id"], ["laos.id"]),
        sa.ForeignKeyConstraint(["condition_id"], ["lao_conditions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("condition_id", "inspection_date", name="uq_lao_inspections_condition_date"),
    )
    op.create_index("ix_lao_inspections_lao_id", "lao_inspections", ["lao_id"], unique=False)
    op.create_index("ix_lao_inspections_condition_id", "lao_inspections", ["condition_id"], unique=False)

    op.create_table(
        "ingest_runs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("dataset", sa.String(length=64), nullable=False),
        sa.Column("source_type", sa.String(length=64), nullable=True),
        sa.Column("source_name", sa.String(length=255), nullable=True),
        sa.Column("source_hash", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=24), server_default=sa.text("'SUCCESS'"), nullable=False),
        sa.Column("stats", sa.JSON(), nullable=True),
        sa.Column("error", sa.String(length=2000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ingest_runs_dataset", "ingest_runs", ["dataset"], unique=False)
    op.create_index("ix_ingest_runs_source_hash", "ingest_runs", ["source_hash"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_ingest_runs_source_hash", table_name="ingest_runs")
    op.drop_index("ix_ingest_runs_dataset", table_name="ingest_runs")
    op.drop_table("ingest_runs")
    op.drop_index("ix_lao_inspections_condition_id", table_name="lao_inspections")
    op.drop_index("ix_lao_inspections_lao_id", table_name="lao_inspections")
    op.drop_table("lao_inspections")
    op.drop_index("ix_lao_conditions_lao_id", table_name="lao_conditions")
    op.drop_table("lao_conditions")
    op.drop_index("ix_laos_validity_date", table_name="laos")
    op.drop_index("ix_laos_lao_number", table_name="laos")
    op.drop_index("ix_laos_branch_id", table_name="laos")
    op.drop_table("laos")
    op.drop_table("license_types")
    op.drop_index("ix_branches_name", table_name="branches")
    op.drop_table("branches")
