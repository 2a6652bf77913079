from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class SectionInfo:
    key: str
    name: str
    short_name: str
    description: str
    recommendation: str


DEFAULT_SECTIONS: Tuple[SectionInfo, ...] = (
    SectionInfo(
        key="work_changes",
        name="When Work Changes",
        short_name="Work Chg",
        description="Clarity during transitions and announcements",
        recommendation="Implement clearer change communication protocols with specific action items.",
    ),
    SectionInfo(
        key="finding_info",
        name="Finding Information",
        short_name="Find Info",
        description="Access to information and message consistency",
        recommendation="Establish a centralized information hub and standardize updates.",
    ),
    SectionInfo(
        key="speaking_up",
        name="Speaking Up",
        short_name="Speak Up",
        description="Psychological safety and feedback culture",
        recommendation="Create regular forums for open dialogue and demonstrate feedback leads to action.",
    ),
    SectionInfo(
        key="cross_team",
        name="Working Across Teams",
        short_name="Cross Tm",
        description="Cross-functional communication and alignment",
        recommendation="Implement cross-functional sync meetings and shared goal visibility.",
    ),
    SectionInfo(
        key="leadership",
        name="Leadership Communication",
        short_name="Leader",
        description="Leadership visibility and relevance",
        recommendation="Increase leadership visibility through regular updates connected to daily work.",
    ),
    SectionInfo(
        key="during_change",
        name="During Change",
        short_name="Dur Chg",
        description="Communication during organizational change",
        recommendation="Develop a change communication playbook with clear expectations.",
    ),
    SectionInfo(
        key="culture",
        name="Everyday Communication",
        short_name="Culture",
        description="Daily communication norms and meeting effectiveness",
        recommendation="Review meeting effectiveness and establish direct communication norms.",
    ),
    SectionInfo(
        key="overload",
        name="Communication Overload",
        short_name="Overload",
        description="Volume management and clarity",
        recommendation="Audit communication channels and implement message prioritization.",
    ),
)

DEFAULT_RECOMMENDATION = "Focus on improving communication practices in this area."

DEPARTMENTS: Tuple[str, ...] = (
    "Executive/Leadership",
    "HR / People Operations",
    "Finance / Accounting",
    "Marketing / Communications",
    "Sales / Business Development",
    "Operations",
    "IT / Technology",
    "Customer Service",
    "Legal",
    "Other",
)

ROLES: Tuple[str, ...] = (
    "Executive / C-Level",
    "Director / VP",
    "Manager / Team Lead",
    "Individual Contributor / Staff",
    "Intern / Entry Level",
    "Other",
)

COMPANY_SIZES: Tuple[str, ...] = ("1-10", "11-50", "51-200", "201-500", "500+")


class SectionCatalog:
    # Display metadata for section keys; unknown keys fall back to the key itself.
    def __init__(self, sections: Tuple[SectionInfo, ...] = DEFAULT_SECTIONS):
        self._sections: Dict[str, SectionInfo] = {s.key: s for s in sections}
        self._order: List[str] = [s.key for s in sections]

    @property
    def keys(self) -> List[str]:
        return list(self._order)

    def get(self, key: str) -> SectionInfo:
        info = self._sections.get(key)
        if info is None:
            return SectionInfo(key=key, name=key, short_name=key, description="", recommendation=DEFAULT_RECOMMENDATION)
        return info

    def name(self, key: str) -> str:
        return self.get(key).name

    def recommendation(self, key: str) -> str:
        return self.get(key).recommendation

    def __contains__(self, key: object) -> bool:
        return key in self._sections


DEFAULT_CATALOG = SectionCatalog()
