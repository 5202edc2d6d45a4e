"""
Core data models for the venuefinder service.

These models represent the domain entities: users, venues, offers, menus,
packages, reviews, visits and staff. Documents are stored and returned with
camelCase keys and their ID under "_id".

Each entity has:
- a Document model (what is stored)
- a Create model (what a client may send on POST)
- an Update model (what a client may send on PUT, every field optional)
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from venuefinder.auth.permissions import PermissionSet, StaffRole
from venuefinder.core.utils import generate_id, utc_now


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input, dumps camelCase."""
    
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)
    
    def to_document(self, **kwargs: Any) -> dict[str, Any]:
        return self.model_dump(by_alias=True, **kwargs)


class Document(CamelModel):
    """Base for stored entities."""
    
    id: str = Field(default_factory=generate_id, alias="_id")
    created_at: datetime = Field(default_factory=utc_now)


def update_fields(update: CamelModel) -> dict[str, Any]:
    """Fields a client actually sent in an update payload."""
    return update.model_dump(by_alias=True, exclude_unset=True)


def _assume_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# Offer windows are compared against the current UTC time
UtcDatetime = Annotated[datetime, AfterValidator(_assume_utc)]


# =============================================================================
# Enums
# =============================================================================


class UserRole(str, Enum):
    """Account role for owner-kind principals."""
    
    USER = "user"
    OWNER = "owner"
    ADMIN = "admin"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    PACKAGE = "package"


class MenuItemCategory(str, Enum):
    STARTER = "starter"
    MAIN = "main"
    DESSERT = "dessert"
    BEVERAGE = "beverage"
    SIDE = "side"
    SPECIAL = "special"


class PriceUnit(str, Enum):
    HOUR = "hour"
    EVENT = "event"
    DAY = "day"
    PERSON = "person"


class PackageType(str, Enum):
    PRIVATE_ROOM = "privateRoom"
    EVENT_SPACE = "eventSpace"
    PARTY_AREA = "partyArea"
    FULL_VENUE = "fullVenue"
    EXPERIENCE = "experience"
    OTHER = "other"


# =============================================================================
# Users
# =============================================================================


class UserCreate(CamelModel):
    """User registration data."""
    full_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)


class User(Document):
    full_name: str
    email: str
    password_hash: str
    role: UserRole = UserRole.USER
    phone_number: str | None = None
    bio: str | None = None
    profile_image: str | None = None
    bookmarks: list[str] = Field(default_factory=list)
    visited: list[str] = Field(default_factory=list)


class ProfileUpdate(CamelModel):
    """Fields an account holder may change on their own profile."""
    full_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone_number: str | None = None
    bio: str | None = Field(default=None, max_length=500)


class PasswordChange(CamelModel):
    current_password: str | None = None
    new_password: str | None = Field(default=None, min_length=6)


def public_user(doc: dict[str, Any]) -> dict[str, Any]:
    """User document without credentials."""
    return {k: v for k, v in doc.items() if k != "passwordHash"}


# =============================================================================
# Venues
# =============================================================================


class GeoPoint(CamelModel):
    """GeoJSON point; coordinates are [longitude, latitude]."""
    type: Literal["Point"] = "Point"
    coordinates: list[float] = Field(min_length=2, max_length=2)
    formatted_address: str | None = None
    city: str | None = None
    state: str | None = None
    zipcode: str | None = None
    country: str | None = None


class VenueCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=2000)
    address: str = Field(min_length=1)
    location: GeoPoint
    category: str | None = None
    phone: str | None = None
    email: EmailStr | None = None
    website: str | None = None
    capacity: int | None = Field(default=None, ge=1)
    amenities: list[str] = Field(default_factory=list)


class VenueUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    address: str | None = None
    location: GeoPoint | None = None
    category: str | None = None
    phone: str | None = None
    email: EmailStr | None = None
    website: str | None = None
    capacity: int | None = Field(default=None, ge=1)
    amenities: list[str] | None = None


class Venue(Document, VenueCreate):
    owner: str
    photos: list[str] = Field(default_factory=list)
    average_rating: float | None = Field(default=None, ge=1, le=5)
    review_count: int = 0


# =============================================================================
# Offers
# =============================================================================


class OfferCreate(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=2000)
    venue: str
    discount_type: DiscountType
    discount_value: float = Field(ge=0)
    start_date: UtcDatetime
    end_date: UtcDatetime
    is_active: bool = True
    limited_availability: bool = False
    available_slots: int | None = Field(default=None, ge=0)
    terms_and_conditions: str | None = None
    promo_code: str | None = None
    applicable_event_types: list[str] = Field(default_factory=list)


class OfferUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    discount_type: DiscountType | None = None
    discount_value: float | None = Field(default=None, ge=0)
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    is_active: bool | None = None
    limited_availability: bool | None = None
    available_slots: int | None = Field(default=None, ge=0)
    terms_and_conditions: str | None = None
    promo_code: str | None = None
    applicable_event_types: list[str] | None = None


class Offer(Document, OfferCreate):
    owner: str


# =============================================================================
# Menus
# =============================================================================


class MenuItemCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    price: float = Field(ge=0)
    category: MenuItemCategory
    image: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    spicy_level: int = Field(default=0, ge=0, le=5)
    popular: bool = False
    available: bool = True


class MenuItemUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    price: float | None = Field(default=None, ge=0)
    category: MenuItemCategory | None = None
    image: str | None = None
    tags: list[str] | None = None
    is_vegetarian: bool | None = None
    is_vegan: bool | None = None
    is_gluten_free: bool | None = None
    spicy_level: int | None = Field(default=None, ge=0, le=5)
    popular: bool | None = None
    available: bool | None = None


class MenuItem(Document, MenuItemCreate):
    pass


class MenuCategory(CamelModel):
    id: str = Field(default_factory=generate_id, alias="_id")
    name: str = Field(min_length=1, max_length=50)
    description: str | None = None
    items: list[MenuItem] = Field(default_factory=list)


class MenuCreate(CamelModel):
    venue: str
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    categories: list[MenuCategory] = Field(default_factory=list)
    is_active: bool = True
    is_default: bool = False


class MenuUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    categories: list[MenuCategory] | None = None
    is_active: bool | None = None
    is_default: bool | None = None


class Menu(Document, MenuCreate):
    user: str | None = None  # Who created it; ownership goes through the venue


# =============================================================================
# Packages
# =============================================================================


class PackagePrice(CamelModel):
    amount: float = Field(ge=0)
    currency: str = "USD"
    unit: PriceUnit = PriceUnit.HOUR


class CapacityRange(CamelModel):
    min: int | None = Field(default=None, ge=0)
    max: int | None = Field(default=None, ge=0)


class PackageCreate(CamelModel):
    venue: str
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    price: PackagePrice
    package_type: PackageType
    capacity: CapacityRange | None = None
    amenities: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    featured_image: str | None = None
    is_active: bool = True


class PackageUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    price: PackagePrice | None = None
    package_type: PackageType | None = None
    capacity: CapacityRange | None = None
    amenities: list[str] | None = None
    images: list[str] | None = None
    featured_image: str | None = None
    is_active: bool | None = None


class Package(Document, PackageCreate):
    pass


# =============================================================================
# Reviews
# =============================================================================


class ReviewCreate(CamelModel):
    rating: int = Field(ge=1, le=5)
    title: str | None = Field(default=None, max_length=100)
    content: str = Field(min_length=1, max_length=1000)
    photos: list[str] = Field(default_factory=list)


class ReviewUpdate(CamelModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    title: str | None = Field(default=None, max_length=100)
    content: str | None = Field(default=None, min_length=1, max_length=1000)
    photos: list[str] | None = None


class Review(Document, ReviewCreate):
    venue: str
    user: str
    user_name: str
    likes: int = 0


# =============================================================================
# Visits
# =============================================================================


class VisitCreate(CamelModel):
    notes: str | None = Field(default=None, max_length=500)


class Visit(Document, VisitCreate):
    user: str
    venue: str
    visit_date: datetime = Field(default_factory=utc_now)


# =============================================================================
# Staff
# =============================================================================


class StaffCreate(CamelModel):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6)
    phone: str | None = None
    profile_image: str = "default-staff.jpg"
    role: StaffRole = StaffRole.HOST
    venues: list[str] = Field(default_factory=list)
    is_active: bool = True


class StaffUpdate(CamelModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=50)
    last_name: str | None = Field(default=None, min_length=1, max_length=50)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=6)
    phone: str | None = None
    profile_image: str | None = None
    role: StaffRole | None = None
    is_active: bool | None = None


class StaffProfileUpdate(CamelModel):
    """Fields a staff member may change on their own profile."""
    first_name: str | None = Field(default=None, min_length=1, max_length=50)
    last_name: str | None = Field(default=None, min_length=1, max_length=50)
    email: EmailStr | None = None
    phone: str | None = None
    profile_image: str | None = None


class Staff(Document):
    first_name: str
    last_name: str
    email: str
    password_hash: str
    phone: str | None = None
    profile_image: str = "default-staff.jpg"
    role: StaffRole = StaffRole.HOST
    owner: str
    venues: list[str] = Field(default_factory=list)
    permissions: PermissionSet = Field(default_factory=PermissionSet)
    last_login: datetime | None = None
    is_active: bool = True


def public_staff(doc: dict[str, Any]) -> dict[str, Any]:
    """Staff document without credentials."""
    return {k: v for k, v in doc.items() if k != "passwordHash"}
