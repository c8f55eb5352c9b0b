# catalog_admin/models.py
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Fixed category set offered by the create form
CATEGORIES = {
    1: "Electronics",
    2: "Furniture",
    3: "Shoes",
    4: "Miscellaneous",
    5: "Clothes",
}

PLACEHOLDER_IMAGE = "https://via.placeholder.com/400?text="


def category_name(category_id: int) -> str:
    return CATEGORIES.get(category_id, "Unknown")


class Category(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    name: str = ""


class Product(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    title: str
    price: float
    description: Optional[str] = None
    category: Optional[Category] = None
    images: List[str] = Field(default_factory=list)

    @property
    def category_name(self) -> Optional[str]:
        if self.category and self.category.name:
            return self.category.name
        return None

    @property
    def first_image(self) -> Optional[str]:
        return self.images[0] if self.images else None


class SortKey(str, Enum):
    NONE = "none"
    TITLE = "title"
    PRICE = "price"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> "SortOrder":
        return SortOrder.DESC if self is SortOrder.ASC else SortOrder.ASC


class ViewState(BaseModel):
    search_query: str = ""
    sort_key: SortKey = SortKey.NONE
    sort_order: SortOrder = SortOrder.ASC
    page_index: int = 1
    page_size: int = Field(default=10, ge=1)


class ViewResult(BaseModel):
    page: List[Product]
    items: List[Product]
    total_count: int
    total_pages: int
    clamped_page_index: int


class CatalogStats(BaseModel):
    total_count: int
    category_count: int
    average_price: float


# ---------------------------
# Form input (raw values as typed by the user)
# ---------------------------
class ProductForm(BaseModel):
    title: str = ""
    price: Union[str, float] = ""
    description: str = ""
    category_id: Optional[int] = None


class ProductUpdateIn(BaseModel):
    title: str
    price: float
    description: str
    categoryId: int


class ProductCreateIn(BaseModel):
    title: str
    price: float
    description: str
    categoryId: int
    images: List[str]
