"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    product = ProductFactory.create(category_id=category.id, stock=3)
    db_session.add(product)
    await db_session.commit()
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _suffix() -> str:
    return uuid.uuid4().hex[:8]


def _unique_email() -> str:
    return f"test-{_suffix()}@test.com"


# ---------------------------------------------------------------------------
# Store: catalog
# ---------------------------------------------------------------------------


class CategoryFactory:
    @staticmethod
    def create(**overrides):
        from services.store_service.models import Category

        suffix = _suffix()
        defaults = {
            "id": _uuid(),
            "name": f"Lighting {suffix}",
            "slug": f"lighting-{suffix}",
            "is_active": True,
            "sort_order": 0,
        }
        defaults.update(overrides)
        return Category(**defaults)


class ProductFactory:
    @staticmethod
    def create(category_id, **overrides):
        from services.store_service.models import Product

        suffix = _suffix()
        defaults = {
            "id": _uuid(),
            "category_id": category_id,
            "name": f"Brass Pendant {suffix}",
            "slug": f"brass-pendant-{suffix}",
            "price": Decimal("100.00"),
            "stock": 10,
            "is_active": True,
            "is_featured": False,
        }
        defaults.update(overrides)
        return Product(**defaults)


class BrandFactory:
    @staticmethod
    def create(**overrides):
        from services.store_service.models import Brand

        defaults = {
            "id": _uuid(),
            "name": f"Noor Atelier {_suffix()}",
            "is_active": True,
        }
        defaults.update(overrides)
        return Brand(**defaults)


class ReviewFactory:
    @staticmethod
    def create(product_id, rating=5, **overrides):
        from services.store_service.models import ProductReview

        defaults = {
            "id": _uuid(),
            "product_id": product_id,
            "user_id": f"customer-{_suffix()}",
            "reviewer_name": "Mariam Saleh",
            "rating": rating,
            "comment": "Beautiful finish",
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return ProductReview(**defaults)


# ---------------------------------------------------------------------------
# Store: orders
# ---------------------------------------------------------------------------


class OrderFactory:
    @staticmethod
    def create(user_id, items=(), **overrides):
        """``items`` is a list of (product, quantity) pairs."""
        from services.store_service.models import Order, OrderItem, OrderStatus

        order_items = [
            OrderItem(product_id=product.id, quantity=quantity, price=product.price)
            for product, quantity in items
        ]
        subtotal = sum(
            (item.price * item.quantity for item in order_items), Decimal("0")
        )
        defaults = {
            "id": _uuid(),
            "order_number": Order.generate_order_number(),
            "user_id": user_id,
            "customer_email": f"{user_id}@test.com",
            "subtotal": subtotal,
            "discount_total": Decimal("0"),
            "total": subtotal or Decimal("100.00"),
            "status": OrderStatus.PENDING,
            "items": order_items,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Order(**defaults)


# ---------------------------------------------------------------------------
# Store: content and promotions
# ---------------------------------------------------------------------------


class BannerFactory:
    @staticmethod
    def create(**overrides):
        from services.store_service.models import Banner, BannerPosition

        defaults = {
            "id": _uuid(),
            "title": "Ramadan Collection",
            "image_url": "https://cdn.noor.ae/banners/ramadan.jpg",
            "link_url": "/collections/ramadan",
            "position": BannerPosition.HERO,
            "display_order": 1,
            "is_active": True,
            "click_count": 0,
            "impressions": 0,
        }
        defaults.update(overrides)
        return Banner(**defaults)


class PromotionFactory:
    @staticmethod
    def create(**overrides):
        from services.store_service.models import (
            Promotion,
            PromotionStatus,
            PromotionTargetType,
            PromotionType,
        )

        defaults = {
            "id": _uuid(),
            "name": f"Promotion {_suffix()}",
            "type": PromotionType.PERCENTAGE,
            "target_type": PromotionTargetType.ALL_PRODUCTS,
            "status": PromotionStatus.ACTIVE,
            "discount_value": Decimal("10"),
            "usage_count": 0,
            "stackable": True,
            "priority": 0,
            "start_date": _now() - timedelta(days=1),
            "end_date": _now() + timedelta(days=30),
        }
        defaults.update(overrides)
        return Promotion(**defaults)


class CouponFactory:
    @staticmethod
    def create(promotion_id, **overrides):
        from services.store_service.models import Coupon

        defaults = {
            "id": _uuid(),
            "code": f"SAVE{_suffix().upper()}",
            "promotion_id": promotion_id,
            "active": True,
            "usage_count": 0,
        }
        defaults.update(overrides)
        return Coupon(**defaults)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class UserFactory:
    @staticmethod
    def create(**overrides):
        from services.accounts_service.models import (
            AccountType,
            KYCStatus,
            OnboardingStep,
            RiskLevel,
            User,
            VerificationLevel,
        )

        defaults = {
            "id": _uuid(),
            "auth_id": f"auth-{_suffix()}",
            "email": _unique_email(),
            "first_name": "Layla",
            "last_name": "Haddad",
            "role": "authenticated",
            "is_active": True,
            "email_verified": True,
            "account_type": AccountType.INDIVIDUAL,
            "kyc_status": KYCStatus.NOT_STARTED,
            "kyb_status": KYCStatus.NOT_STARTED,
            "verification_level": VerificationLevel.BASIC,
            "onboarding_step": OnboardingStep.REGISTRATION,
            "risk_score": 0,
            "risk_level": RiskLevel.LOW,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return User(**defaults)


class CompanyFactory:
    @staticmethod
    def create(owner_id, **overrides):
        from services.accounts_service.models import (
            Company,
            CompanyAccountType,
            CompanySettings,
        )

        suffix = _suffix()
        defaults = {
            "id": _uuid(),
            "name": f"Desert Interiors {suffix}",
            "slug": f"desert-interiors-{suffix}",
            "account_type": CompanyAccountType.STANDARD,
            "is_active": True,
            "owner_id": owner_id,
            "settings": CompanySettings(),
        }
        defaults.update(overrides)
        return Company(**defaults)


class InvitationFactory:
    @staticmethod
    def create(company_id, invited_by, **overrides):
        from services.accounts_service.models import (
            CompanyRole,
            InvitationStatus,
            UserInvitation,
        )

        defaults = {
            "id": _uuid(),
            "email": _unique_email(),
            "company_id": company_id,
            "role": CompanyRole.PURCHASER,
            "status": InvitationStatus.PENDING,
            "invited_by": invited_by,
            "expires_at": _now() + timedelta(days=7),
            "created_at": _now(),
        }
        defaults.update(overrides)
        return UserInvitation(**defaults)


class DocumentFactory:
    @staticmethod
    def create(user_id, **overrides):
        from services.accounts_service.models import (
            DocumentCategory,
            DocumentStatus,
            DocumentType,
            VerificationDocument,
        )

        defaults = {
            "id": _uuid(),
            "user_id": user_id,
            "type": DocumentType.NATIONAL_ID,
            "category": DocumentCategory.IDENTITY,
            "file_name": "emirates-id.pdf",
            "file_url": "https://files.noor.ae/kyc/emirates-id.pdf",
            "file_mime_type": "application/pdf",
            "file_size": 204800,
            "status": DocumentStatus.PENDING,
        }
        defaults.update(overrides)
        return VerificationDocument(**defaults)


# ---------------------------------------------------------------------------
# Communications
# ---------------------------------------------------------------------------


class NotificationFactory:
    @staticmethod
    def create(user_id, **overrides):
        from services.communications_service.models import (
            Notification,
            NotificationPriority,
            NotificationStatus,
        )

        defaults = {
            "id": _uuid(),
            "user_id": user_id,
            "title": "Order Shipped",
            "body": "Your order is on its way!",
            "data": {},
            "actions": [],
            "require_interaction": False,
            "silent": False,
            "priority": NotificationPriority.NORMAL,
            "category": "order_shipped",
            "status": NotificationStatus.SENT,
            "sent_at": _now(),
            "created_at": _now(),
        }
        defaults.update(overrides)
        return Notification(**defaults)
