"""
Read-only requests.

Uses Query base class from py-cqrs-ddd-toolkit.
"""

from dataclasses import dataclass
from typing import Optional

from cqrs_ddd.core import Query


@dataclass(kw_only=True)
class GetTwoFactorProviders(Query):
    """
    Two-factor providers available to the user whose login is waiting
    for a second factor in ``session_id``.
    """

    session_id: Optional[str] = None
