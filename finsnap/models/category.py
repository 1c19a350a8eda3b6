"""Category model, including the reserved adjustment category."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from finsnap.database import Base
from finsnap.models.base import IdMixin

UNKNOWN_CATEGORY_ID = "unknown-category-system"
UNKNOWN_CATEGORY_NAME = "Unknown"


class Category(IdMixin, Base):
    """Spending/income category label."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(16), nullable=False, default="#6B7280")
    # System categories cannot be deleted through the record store
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    @property
    def is_reserved(self) -> bool:
        return self.id == UNKNOWN_CATEGORY_ID

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


def build_unknown_category() -> Category:
    return Category(
        id=UNKNOWN_CATEGORY_ID,
        name=UNKNOWN_CATEGORY_NAME,
        color="#6B7280",
        is_system=True,
    )
