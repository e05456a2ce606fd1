"""Initial store schema."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="community"),
        sa.Column("apikey", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_apikey", "users", ["apikey"], unique=True)

    op.create_table(
        "packages",
        sa.Column("id", sa.String(length=255), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("tagline", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("changelog", sa.Text(), nullable=True),
        sa.Column("author", sa.String(length=255), nullable=True),
        sa.Column("framework", sa.String(length=128), nullable=True),
        sa.Column("version", sa.String(length=128), nullable=True),
        sa.Column("manifest", sa.JSON(), nullable=True),
        sa.Column("types", sa.JSON(), nullable=False),
        sa.Column("languages", sa.JSON(), nullable=False),
        sa.Column("icon", sa.String(length=512), nullable=True),
        sa.Column("maintainer", sa.String(length=64), nullable=True),
        sa.Column("maintainer_name", sa.String(length=255), nullable=True),
        sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("locked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("architectures", sa.JSON(), nullable=False),
        sa.Column("channels", sa.JSON(), nullable=False),
        sa.Column("channel_architectures", sa.JSON(), nullable=False),
        sa.Column("device_compatibilities", sa.JSON(), nullable=False),
        sa.Column("created_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_date", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_packages_maintainer", "packages", ["maintainer"])
    op.create_index("ix_packages_published", "packages", ["published"])

    op.create_table(
        "package_revisions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "package_id",
            sa.String(length=255),
            sa.ForeignKey("packages.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("revision", sa.Integer(), nullable=False),
        sa.Column("version", sa.String(length=128), nullable=False),
        sa.Column("channel", sa.String(length=32), nullable=False),
        sa.Column("architecture", sa.String(length=128), nullable=False),
        sa.Column("framework", sa.String(length=128), nullable=True),
        sa.Column("download_url", sa.String(length=1024), nullable=True),
        sa.Column("download_sha512", sa.String(length=128), nullable=True),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("filesize", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("download_size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("downloads", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_date", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("package_id", "revision", name="uq_package_revision_number"),
        sa.UniqueConstraint(
            "package_id",
            "version",
            "channel",
            "architecture",
            name="uq_package_revision_version_channel_arch",
        ),
    )
    op.create_index("ix_package_revisions_package_id", "package_revisions", ["package_id"])

    op.create_table(
        "locks",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("expire", sa.DateTime(timezone=True), nullable=False),
        sa.Column("inserted", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("name", name="uq_locks_name"),
    )


def downgrade() -> None:
    op.drop_table("locks")
    op.drop_index("ix_package_revisions_package_id", table_name="package_revisions")
    op.drop_table("package_revisions")
    op.drop_index("ix_packages_published", table_name="packages")
    op.drop_index("ix_packages_maintainer", table_name="packages")
    op.drop_table("packages")
    op.drop_index("ix_users_apikey", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
