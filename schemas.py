"""
Database Schemas for the Furniture Store

Each Pydantic model correlates to a MongoDB collection, named explicitly
below since several collections share a shape.
- UserProfile -> "users"
- Product -> "products"
- Order -> "orders"
- PrivateReview -> "reviews_private", PublicReview -> "reviews_public"
- ContactMessage -> "messages"
- Subscriber -> "newsletter_subscribers"
- admin roles live in "roles_admin", keyed by user id

Request models for the API live here too.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

CategoryId = Literal["living-room", "bedroom", "dining", "office", "outdoor", "decor"]
OrderStatus = Literal["Pending", "Processing", "Delivered", "Cancelled"]
ReviewStatus = Literal["pending", "approved", "rejected"]
PaymentMethod = Literal["Cash", "Mobile Money", "Bank Transfer", "Card"]


class UserProfile(BaseModel):
    email: EmailStr = Field(..., description="Email address")
    display_name: Optional[str] = Field(None, description="Name shown in the store")
    photo_url: Optional[str] = None
    password_hash: str = Field(..., description="BCrypt password hash")
    last_login_at: Optional[datetime] = None


class ProductImage(BaseModel):
    url: str
    hint: str = Field("", description="Short alt/search hint for the image")


class Product(BaseModel):
    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field(..., description="Product description")
    price: int = Field(..., ge=0, description="Price in whole currency units")
    category: CategoryId = Field(..., description="Category id")
    images: List[ProductImage] = Field(default_factory=list)
    sizes: Optional[List[str]] = None
    materials: Optional[List[str]] = None
    stock: int = Field(0, ge=0, description="Units in stock")
    is_featured: bool = False
    discount_percentage: Optional[int] = Field(None, ge=0, le=100)
    delivery_info: Optional[str] = None


REQUIRED_PRODUCT_FIELDS = ("name", "description", "price", "category", "images", "stock", "is_featured")


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    category: Optional[CategoryId] = None
    images: Optional[List[ProductImage]] = None
    sizes: Optional[List[str]] = None
    materials: Optional[List[str]] = None
    stock: Optional[int] = Field(None, ge=0)
    is_featured: Optional[bool] = None
    discount_percentage: Optional[int] = Field(None, ge=0, le=100)
    delivery_info: Optional[str] = None

    @model_validator(mode="after")
    def no_null_required_fields(self):
        cleared = [f for f in REQUIRED_PRODUCT_FIELDS if f in self.model_fields_set and getattr(self, f) is None]
        if cleared:
            raise ValueError(f"These fields cannot be null: {', '.join(cleared)}")
        return self


class OrderItem(BaseModel):
    product_id: str
    product_name: str
    quantity: int = Field(1, ge=1)
    price: int = Field(..., ge=0, description="Unit price at purchase")


class Order(BaseModel):
    customer_name: str
    phone: str
    address: str
    items: List[OrderItem]
    total: int = Field(..., ge=0)
    amount_paid: Optional[int] = Field(None, ge=0)
    balance: Optional[int] = None
    payment_method: Optional[str] = None
    status: OrderStatus = "Pending"
    user_id: str = Field(..., description="User who placed or recorded the order")


class PrivateReview(BaseModel):
    user_id: str
    name: str
    rating: int = Field(..., ge=1, le=5)
    message: str
    status: ReviewStatus = "pending"


class PublicReview(BaseModel):
    name: str
    rating: int = Field(..., ge=1, le=5)
    message: str
    created_at: datetime
    approved_at: datetime


class ContactMessage(BaseModel):
    name: str = Field(..., min_length=2)
    email: EmailStr
    message: str = Field(..., min_length=10)
    is_read: bool = False


class Subscriber(BaseModel):
    email: EmailStr


# Lightweight request models
class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    display_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


class CheckoutLine(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)


class CheckoutRequest(BaseModel):
    customer_name: str = Field(..., min_length=2)
    phone: str = Field(..., min_length=10)
    address: str = Field(..., min_length=5)
    items: List[CheckoutLine]
    payment_method: Optional[PaymentMethod] = None
    amount_paid: Optional[int] = Field(None, ge=0)


class DirectSaleRequest(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    customer_name: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    amount_paid: Optional[int] = Field(None, ge=0)


class StatusUpdate(BaseModel):
    status: OrderStatus


class ReviewIn(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    message: str = Field(..., min_length=3)


class ChatTurn(BaseModel):
    role: Literal["user", "model"]
    content: str


class ChatRequest(BaseModel):
    history: List[ChatTurn] = Field(default_factory=list)
    message: str = Field(..., min_length=1)


class RecommendationRequest(BaseModel):
    viewed_product_ids: List[str] = Field(default_factory=list)
    cart_product_ids: List[str] = Field(default_factory=list)
    current_product_id: Optional[str] = None


class WeeklySales(BaseModel):
    date: str
    revenue: int


class StatusCount(BaseModel):
    name: str
    value: int


class CategoryRevenue(BaseModel):
    name: str
    revenue: int


class SalesReport(BaseModel):
    weekly_sales: List[WeeklySales]
    order_status_counts: List[StatusCount]
    category_revenue: List[CategoryRevenue]
    total_revenue: int
