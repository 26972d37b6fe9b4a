from .users import User, SessionToken, PasswordResetToken, OtpCode
from .catalog import Product, ProductImage, Review
from .orders import Address, Cart, CartItem, Order, OrderItem
from .coupons import Coupon
from .support import SupportTicket, SupportMessage, Chat, ChatMessage
from .newsletter import NewsletterSubscriber, NewsletterTemplate, NewsletterCampaign
from .settings import PaymentConfig, SiteSettings, SmsConfig, SmtpConfig
from .bulk_orders import BulkOrder

__all__ = [
    'User', 'SessionToken', 'PasswordResetToken', 'OtpCode',
    'Product', 'ProductImage', 'Review',
    'Address', 'Cart', 'CartItem', 'Order', 'OrderItem',
    'Coupon',
    'SupportTicket', 'SupportMessage', 'Chat', 'ChatMessage',
    'NewsletterSubscriber', 'NewsletterTemplate', 'NewsletterCampaign',
    'PaymentConfig', 'SiteSettings', 'SmsConfig', 'SmtpConfig',
    'BulkOrder',
]
