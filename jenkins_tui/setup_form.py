"""
Setup wizard state: pure dataclass, no Textual imports.

Can be constructed and tested without a running Textual app.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .config import Profile


@dataclass
class SetupForm:
    """Values entered on the setup screen plus the outcome of the last connection check."""

    base_url: str = ""
    username: str = ""
    token: str = ""
    testing: bool = False
    error: str = ""
    result: str = ""

    def with_values(self, base_url: str, username: str, token: str) -> SetupForm:
        return replace(
            self,
            base_url=base_url.strip(),
            username=username.strip(),
            token=token.strip(),
            error="",
            result="",
        )

    def validate(self) -> str:
        """Return an error message, or '' when the form can be submitted."""
        if not (self.base_url and self.username and self.token):
            return "All fields are required"
        if not self.base_url.startswith(("http://", "https://")):
            return "Jenkins URL must start with http:// or https://"
        return ""

    def to_profile(self, defaults: Profile | None = None) -> Profile:
        """Profile carrying the entered credentials over the given defaults."""
        return replace(
            defaults or Profile(),
            base_url=self.base_url,
            username=self.username,
            api_token=self.token,
        )
