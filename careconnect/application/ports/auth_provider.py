from typing import Optional, Protocol


class AuthProvider(Protocol):
    def current_user_id(self) -> Optional[str]:
        ...

    def current_role(self) -> Optional[str]:
        ...
