"""Request cookies in, ``Set-Cookie`` directives out."""

from dataclasses import dataclass, replace


def parse_cookies(header: str) -> dict[str, str]:
    """Map cookie names to values from a ``Cookie`` header.

    Pairs without ``=`` are skipped, surrounding quotes are dropped, and
    when a name repeats the first value is kept (the most specific path,
    as browsers send them).
    """
    cookies: dict[str, str] = {}
    for pair in header.split(";") if header else ():
        name, sep, value = pair.partition("=")
        name = name.strip()
        if sep and name:
            cookies.setdefault(name, value.strip().strip('"'))
    return cookies


@dataclass(frozen=True, slots=True)
class SetCookie:
    name: str
    value: str
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str | None = "lax"

    def expired(self) -> "SetCookie":
        """The directive that removes this cookie from the client."""
        return replace(self, value="", max_age=0)

    def to_header_value(self) -> str:
        attributes = [
            f"Max-Age={self.max_age}" if self.max_age is not None else "",
            f"Path={self.path}" if self.path else "",
            f"Domain={self.domain}" if self.domain else "",
            "Secure" if self.secure else "",
            "HttpOnly" if self.httponly else "",
            f"SameSite={self.samesite.capitalize()}" if self.samesite else "",
        ]
        return "; ".join([f"{self.name}={self.value}", *filter(None, attributes)])
