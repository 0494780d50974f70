from .payment_schema import (
    CheckoutRequest, CheckoutSessionResponse, PaymentIntentResponse, PreferenceResponse,
    CardPayer, CardPaymentRequest, CardPaymentResponse, PaymentConfigResponse,
    PaymentRead, ProgressRead, NotificationRead, NotificationCreate, WaitlistRead,
)
from .user_schema import (
    UserCreate, UserLogin, PasswordResetRequest, PasswordResetConfirm,
    ProfileRead, ProfileUpdate, AdminProfileUpdate, AuthUser, LoginResponse, MessageResponse,
)

__all__ = [
    # Payment
    "CheckoutRequest", "CheckoutSessionResponse", "PaymentIntentResponse", "PreferenceResponse",
    "CardPayer", "CardPaymentRequest", "CardPaymentResponse", "PaymentConfigResponse",
    "PaymentRead", "ProgressRead", "NotificationRead", "NotificationCreate", "WaitlistRead",

    # User
    "UserCreate", "UserLogin", "PasswordResetRequest", "PasswordResetConfirm",
    "ProfileRead", "ProfileUpdate", "AdminProfileUpdate", "AuthUser", "LoginResponse", "MessageResponse",
]
