from enum import Enum


class VerificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DonationStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class DeliveryMode(str, Enum):
    OFFLINE = "offline"
    ONLINE = "online"
    HYBRID = "hybrid"


class BillingCategory(str, Enum):
    REGISTRATION = "registration"
    SPP = "spp"
    MASS_STUDENT = "mass_student"
    DONATION = "donation"


class UserBillingStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    CANCELED = "canceled"
