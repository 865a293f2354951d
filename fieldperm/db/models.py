"""
SQLAlchemy Database Models
"""

from sqlalchemy import Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fieldperm.db.base import Base, TimestampMixin, UUIDMixin


class FieldPermission(UUIDMixin, TimestampMixin, Base):
    """Explicit per-(table, field, role) permission override"""

    __tablename__ = "field_permissions"
    __table_args__ = (
        UniqueConstraint("table_id", "field_id", "role", name="uq_field_permissions_table_field_role"),
        Index("idx_field_permissions_role", "role"),
    )

    table_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    field_id: Mapped[str] = mapped_column(String(50), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    can_read: Mapped[bool] = mapped_column(Boolean, nullable=False)
    can_write: Mapped[bool] = mapped_column(Boolean, nullable=False)
    can_delete: Mapped[bool] = mapped_column(Boolean, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<FieldPermission(table={self.table_id}, field={self.field_id}, role={self.role}, "
            f"r={self.can_read}, w={self.can_write}, d={self.can_delete})>"
        )


# Tables below are owned by the schema and membership services. This
# service only reads them.


class Field(Base):
    """Field of a user table (schema collaborator)"""

    __tablename__ = "fields"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    table_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="text")
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class TableMember(Base):
    """Role of a user on a table (identity collaborator)"""

    __tablename__ = "table_members"

    table_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
