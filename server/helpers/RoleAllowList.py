from typing import Dict, List, Optional

from models.models import Email, Role


def resolve_role(email, requested_role: Optional[str], role_emails: Dict[str, List[str]]) -> Optional[str]:
    """
    Return the role the email may sign in with, or None when it is not allowed.

    An email can appear under several roles; the requested one wins when allowed,
    otherwise the most senior role listed for it is used.
    """
    email = Email(email)
    allowed = [role.value for role in Role if email in role_emails.get(role.value, [])]
    if not allowed:
        return None
    if requested_role:
        return requested_role if requested_role in allowed else None
    return allowed[0]
