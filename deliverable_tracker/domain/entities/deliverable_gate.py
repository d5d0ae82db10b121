"""
Deliverable Gate Entity - Named milestone capping cumulative progress.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional


def normalize_guid(value: Any) -> Optional[str]:
    """Lower-case a GUID and strip surrounding braces and whitespace."""
    if value is None:
        return None
    return str(value).strip().strip('{}').lower()


def same_guid(a: Any, b: Any) -> bool:
    """Compare two GUIDs regardless of case and brace formatting."""
    if a is None or b is None:
        return False
    return normalize_guid(a) == normalize_guid(b)


@dataclass(frozen=True)
class DeliverableGate:
    """
    Milestone ceiling for deliverable progress.

    Attributes:
        guid: Gate identity
        name: Display name (e.g. 'IFC')
        max_percentage: Highest cumulative progress allowed at this gate (0..1)
        auto_percentage: Suggested progress when the gate is selected (0..1)
    """

    guid: str
    name: str
    max_percentage: float
    auto_percentage: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'guid': self.guid,
            'name': self.name,
            'max_percentage': self.max_percentage,
            'auto_percentage': self.auto_percentage,
        }
