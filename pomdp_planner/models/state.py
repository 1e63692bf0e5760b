"""Observed State — the snapshot of the conversation the planner reasons over."""

import time
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CartSummary(BaseModel):
    """Current cart as seen by the agent."""

    items: List[dict] = []
    total: float = 0.0                      # Accepts "6000" as well as 6000
    item_count: int = 0


class CatalogItem(BaseModel):
    """A product the agent may offer."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None


class PriceRange(BaseModel):
    min: float
    max: float


class UserPreferences(BaseModel):
    """Customer profile hints. Affect preferences only, never intent."""

    past_purchases: List[str] = []
    interests: List[str] = []
    price_range: Optional[PriceRange] = None


class ObservedState(BaseModel):
    """
    Everything the planner can observe for one planning step.
    Captured once by the caller and read-only afterwards.
    """

    model_config = ConfigDict(frozen=True)

    # Customer context
    customer_id: str
    conversation_id: Optional[str] = None

    # Observable state
    message: str
    conversation_history: List[dict] = []
    current_cart: Optional[CartSummary] = None

    # Available resources
    available_products: List[CatalogItem] = []
    knowledge_base: List[dict] = []

    # Customer profile
    user_preferences: Optional[UserPreferences] = None

    # Environment
    timestamp: int = Field(
        default_factory=lambda: int(time.time() * 1000)
    )                                       # Epoch milliseconds
    channel: str = "web"

    @property
    def has_cart_items(self) -> bool:
        return self.current_cart is not None and self.current_cart.item_count > 0

    @property
    def cart_total(self) -> float:
        return self.current_cart.total if self.current_cart else 0.0


class LegacyPlannerState(BaseModel):
    """Looser input shape accepted by the legacy entry point."""

    customer_id: str
    message: str
    conversation_id: Optional[str] = None
    conversation_history: Optional[List[dict]] = None
    current_cart: Optional[CartSummary] = None
    available_products: Optional[List[CatalogItem]] = None
    knowledge_base: Optional[List[dict]] = None
    user_preferences: Optional[UserPreferences] = None

    def to_observed_state(self) -> ObservedState:
        return ObservedState(
            customer_id=self.customer_id,
            conversation_id=self.conversation_id,
            message=self.message,
            conversation_history=self.conversation_history or [],
            current_cart=self.current_cart,
            available_products=self.available_products or [],
            knowledge_base=self.knowledge_base or [],
            user_preferences=self.user_preferences,
            channel="web",
        )


class Tenant(BaseModel):
    """The store the agent is acting for."""

    id: str
    name: str
    created_at: datetime
