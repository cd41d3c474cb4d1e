from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from courtroom.engine.personas import get_profile
from courtroom.models.case import Case
from courtroom.models.session import Turn

RESPOND_INSTRUCTION = "Respond now, briefly but realistically, as your character in this courtroom situation."
QUOTE_LIMIT = 200


@dataclass(frozen=True)
class PromptPayload:
    system: str
    instruction: str = RESPOND_INSTRUCTION

    def to_messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.instruction},
        ]


def render_transcript(transcript: Sequence[Turn]) -> str:
    return "\n".join(f"{turn.name}: {turn.text}" for turn in transcript)


def _quote(text: str, limit: int = QUOTE_LIMIT) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def build_prompt(
    case: Case,
    transcript: Sequence[Turn],
    persona,
    situation: str,
    responding_to: Optional[str] = None,
) -> PromptPayload:
    profile = get_profile(persona)

    history = render_transcript(transcript)
    history_block = ""
    if history:
        history_block = f"""
========================
TRANSCRIPT SO FAR
========================
{history}
"""

    respond_block = ""
    if responding_to:
        respond_block = f'RESPOND TO: "{_quote(responding_to)}"\n'

    system = f"""
========================
CASE: {case.title}
========================
DESCRIPTION: {case.description}
EVIDENCE: {"; ".join(case.evidence)}
{history_block}
========================
CURRENT SITUATION
========================
{situation}
{respond_block}
{profile.instructions}
""".strip()

    return PromptPayload(system=system)
