import enum


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    COURIER = "COURIER"
    STAFF = "STAFF"
    GUEST = "GUEST"

    @classmethod
    def from_claim(cls, value: str | None) -> "Role":
        """Map an identity-provider role string (``ROLE_ADMIN``, ``admin``...) to a Role."""
        if not value:
            return cls.GUEST
        name = value.strip().upper()
        if name.startswith("ROLE_"):
            name = name[len("ROLE_"):]
        try:
            return cls(name)
        except ValueError:
            return cls.STAFF
