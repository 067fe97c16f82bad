"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, cookie_secret="s3cr3t")
    """

    # Include exception text in 500 responses
    debug: bool = False

    # Secret used to verify signed request cookies. SessionMiddleware
    # supplies its own secret_key when this is left empty.
    cookie_secret: str = ""

    # Install wren.middleware.body.body_parser as the first global middleware
    body_parser: bool = True

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB

    # Applied to the "wren" logger when the app freezes; None leaves it alone
    log_level: str | None = None
