from enum import Enum


class PropertyTypes(str, Enum):
    APARTMENT = "apartment"
    HOUSE = "house"
    VILLA = "villa"
    STUDIO = "studio"
    LAND = "land"
    COMMERCIAL = "commercial"


class PropertyStatus(str, Enum):
    ACTIVE = "active"
    SOLD = "sold"
    RENTED = "rented"
    INACTIVE = "inactive"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    REGISTERED = "registered"
    ACTIVE = "active"
    IDLE = "idle"
    CLOSED = "closed"


class TwoFactorMethod(str, Enum):
    EMAIL = "email"
    SMS = "sms"
