from decimal import Decimal

ROLE_BUYER = "buyer"
ROLE_SELLER = "seller"
ROLE_ADMIN = "admin"

USER_ROLES = (ROLE_BUYER, ROLE_SELLER, ROLE_ADMIN)

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled", "refunded")

# статусы, в которых покупатель ещё может отменить заказ
CANCELLABLE_STATUSES = ("pending", "processing")

PAYMENT_METHODS = ("card", "paypal", "cash_on_delivery", "bank_transfer", "wallet")

PRODUCT_CATEGORIES = ("fashion", "electronics", "food", "home", "beauty", "other")
BUSINESS_TYPES = PRODUCT_CATEGORIES
PRODUCT_STATUSES = ("active", "inactive", "out_of_stock", "draft")
USER_STATUSES = ("active", "inactive")

NOTIFICATION_CHANNELS = ("email", "push", "sms")
ID_TYPES = ("nin", "passport", "driver", "voter")

COMMISSION_RATE = Decimal("0.05")
VERIFICATION_FEE = Decimal("20.00")

THEMES = ("light", "dark")

# ключи клиентского хранилища
KEY_TOKEN = "token"
KEY_USER = "user"
KEY_CART = "cart"
KEY_PREFERENCES = "userPreferences"
KEY_THEME = "theme"

AUTH_KEYS = (KEY_TOKEN, KEY_USER)
LOGOUT_KEYS = (KEY_TOKEN, KEY_USER, KEY_CART, KEY_PREFERENCES)

PLACEHOLDER_IMAGE = "https://images.unsplash.com/photo-1556228578-9c360e1d8d34?q=80&w=1974"
UNKNOWN_SELLER = "Unknown Seller"
