# backend/projects/services/legal_clauses.py
"""
Fixed wording of the service agreement. The renderer interleaves these with the
agreement's own data (scope, dates, payment terms, jurisdiction).
"""
from __future__ import annotations

from typing import List, Optional


SCOPE_INTRO = "The Service Provider agrees to design and/or develop a website as per the following scope:"
SCOPE_NOTE = (
    "Any additional features, integrations, or changes not explicitly listed above are outside the scope of this "
    "Agreement and may require a separate quotation or amendment."
)

TIMELINE_NOTE = (
    "Timelines are dependent on timely feedback, approvals, and content provided by the Client. Delays caused by the "
    "Client may extend the project timeline accordingly."
)

PAYMENT_INTRO = "The Client agrees to pay the Service Provider as per the selected payment structure:"
PAYMENT_NOTE = (
    "Work will commence only after receipt of any applicable upfront payment. Late payments may result in work being "
    "paused until payment is received."
)

PAYMENT_STRUCTURE_TEXT = {
    "50-50": "50% Upfront & 50% Upon Completion",
    "100-upfront": "100% Upfront",
    "100-completion": "100% Upon Completion",
    "milestone-based": "Milestone-Based Payments",
}

REVISIONS_NOTE = (
    'A "revision" refers to minor design or content adjustments within the agreed scope. Major changes, redesigns, '
    "or scope expansions will be treated as additional work and billed separately."
)

CLIENT_RESPONSIBILITIES_INTRO = "The Client agrees to:"
CLIENT_RESPONSIBILITIES = [
    "Provide all required content, assets, and feedback in a timely manner",
    "Review and approve deliverables within a reasonable timeframe",
    "Ensure that any provided content does not infringe third-party rights",
]
CLIENT_RESPONSIBILITIES_NOTE = "Delays in client input may affect delivery timelines."

OWNERSHIP_TEXT = "Upon full payment, the Client will receive ownership rights to the final approved deliverables."
OWNERSHIP_NOTE = (
    "The Service Provider retains the right to showcase the work in portfolios, case studies, or marketing materials "
    "unless otherwise agreed in writing."
)

CONFIDENTIALITY_NOTE = (
    "Both parties agree to keep any confidential or sensitive information shared during the project strictly "
    "confidential and not disclose it to third parties without prior consent."
)

TERMINATION_INTRO = "Either party may terminate this Agreement with written notice."
TERMINATION_TERMS = [
    "Payments already made are non-refundable for work completed up to the termination date.",
    "Any completed work up to termination will be handed over to the Client upon settlement of dues.",
]

LIABILITY_INTRO = "The Service Provider shall not be liable for:"
LIABILITY_EXCLUSIONS = [
    "Loss of business, revenue, or profits",
    "Issues arising from third-party tools, hosting providers, or platforms",
    "Delays caused by client actions or external dependencies",
]

ACCEPTANCE_NOTE = (
    "By proceeding, both parties confirm that they have read, understood, and agreed to the terms of this Agreement."
)

JURISDICTION_PLACEHOLDER = "[Jurisdiction / Country]"
CLIENT_NAME_PLACEHOLDER = "[Client Name]"


def payment_structure_text(structure: Optional[str]) -> str:
    return PAYMENT_STRUCTURE_TEXT.get(structure or "", PAYMENT_STRUCTURE_TEXT["milestone-based"])


def governing_law_text(jurisdiction: Optional[str]) -> str:
    place = (jurisdiction or "").strip() or JURISDICTION_PLACEHOLDER
    return (
        "This Agreement shall be governed by and interpreted in accordance with the laws applicable in "
        f"{place}, unless otherwise agreed."
    )


def revisions_text(count: Optional[int]) -> str:
    return f"The Agreement includes up to {int(count or 0)} revisions."


def introduction_text(provider_name: str, client_name: Optional[str], agreement_date: str) -> str:
    return (
        f'This Agreement is entered into between {provider_name} ("Service Provider") and '
        f'{client_name or CLIENT_NAME_PLACEHOLDER} ("Client") on {agreement_date}.'
    )


def section_titles() -> List[str]:
    return [
        "1. Scope of Work",
        "2. Timeline & Milestones",
        "3. Payment Terms",
        "4. Revisions",
        "5. Client Responsibilities",
        "6. Ownership & Usage Rights",
        "7. Confidentiality",
        "8. Termination",
        "9. Limitation of Liability",
        "10. Governing Law",
        "11. Acceptance & E-Signature",
    ]
