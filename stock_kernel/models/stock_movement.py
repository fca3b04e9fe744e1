"""
Module: stock_kernel.models.stock_movement
Responsibility: SQLAlchemy ORM persistence model for ledger movements.  Maps
    the frozen ``MovementRecord`` DTO to the append-only ``stock_movements``
    table.

Architecture position: Kernel > Models.  Inherits from Base
    (stock_kernel.db.base).  Site, book and company ids reference catalog
    entities owned elsewhere, so there are NO foreign key constraints.

Invariants enforced:
    - unit_cost / total_cost use Decimal (ExactDecimal) -- NEVER float.
    - movement_type stored as String(20) holding the MovementType value.
    - Rows are append-only; UPDATE and DELETE are blocked by
      stock_kernel.db.immutability listeners.
    - total_cost is persisted for querying but the DTO always re-derives it.

Failure modes:
    - ValueError from to_dto() if a row holds an unknown movement_type.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, LedgerId
from stock_kernel.domain.movement import MovementRecord, MovementType


class StockMovementModel(Base):
    """
    ORM model for one ledger movement.

    Maps to: stock_kernel.domain.movement.MovementRecord (frozen dataclass).
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        Index("idx_stock_movement_company", "company_id"),
        Index("idx_stock_movement_site_book", "site_id", "book_id"),
        Index("idx_stock_movement_date", "movement_date"),
        Index("idx_stock_movement_reference", "reference_type", "reference_id"),
    )

    id: Mapped[int] = mapped_column(LedgerId, primary_key=True, autoincrement=True)

    company_id: Mapped[int] = mapped_column()
    site_id: Mapped[int] = mapped_column()
    book_id: Mapped[int] = mapped_column()

    movement_type: Mapped[str] = mapped_column(String(20))
    quantity: Mapped[int] = mapped_column()

    reference_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    reference_id: Mapped[int | None] = mapped_column(nullable=True)

    from_site_id: Mapped[int | None] = mapped_column(nullable=True)
    to_site_id: Mapped[int | None] = mapped_column(nullable=True)

    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    total_cost: Mapped[Decimal | None] = mapped_column(nullable=True)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    movement_date: Mapped[datetime] = mapped_column()
    created_by: Mapped[int | None] = mapped_column(nullable=True)

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def to_dto(self) -> MovementRecord:
        """Convert ORM row to a frozen MovementRecord."""
        movement_date = self.movement_date
        # SQLite drops tzinfo; rows are always written in UTC.
        if movement_date.tzinfo is None:
            movement_date = movement_date.replace(tzinfo=timezone.utc)
        return MovementRecord(
            id=self.id,
            company_id=self.company_id,
            site_id=self.site_id,
            book_id=self.book_id,
            movement_type=MovementType(self.movement_type),
            quantity=self.quantity,
            timestamp=movement_date,
            unit_cost=self.unit_cost,
            reference_type=self.reference_type,
            reference_id=self.reference_id,
            from_site_id=self.from_site_id,
            to_site_id=self.to_site_id,
            created_by=self.created_by,
            description=self.description,
        )

    @classmethod
    def from_dto(cls, dto: MovementRecord) -> "StockMovementModel":
        """Create ORM model from a validated MovementRecord (id left to the database)."""
        return cls(
            company_id=dto.company_id,
            site_id=dto.site_id,
            book_id=dto.book_id,
            movement_type=dto.movement_type.value,
            quantity=dto.quantity,
            reference_type=dto.reference_type,
            reference_id=dto.reference_id,
            from_site_id=dto.from_site_id,
            to_site_id=dto.to_site_id,
            unit_cost=dto.unit_cost,
            total_cost=dto.total_cost,
            description=dto.description,
            movement_date=dto.timestamp.astimezone(timezone.utc),
            created_by=dto.created_by,
        )

    def __repr__(self) -> str:
        return (
            f"<StockMovementModel {self.id} {self.movement_type} "
            f"site={self.site_id} book={self.book_id} qty={self.quantity}>"
        )
