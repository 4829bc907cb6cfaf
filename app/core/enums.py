from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    DRIVER = "driver"

    def __str__(self):
        return self.value


class TripDirection(str, Enum):
    TO_AIRPORT = "To the Airport"
    FROM_AIRPORT = "From the Airport"

    def __str__(self):
        return self.value


class VehicleHint(str, Enum):
    STANDARD = "standard"
    VAN = "van"

    def __str__(self):
        return self.value


class PricingSource(str, Enum):
    MATRIX = "matrix"
    FALLBACK = "fallback"

    def __str__(self):
        return self.value
