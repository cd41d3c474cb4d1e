from dataclasses import dataclass
from enum import Enum
from typing import Dict

from courtroom.models.session import Speaker


class Persona(str, Enum):
    JUDGE = "judge"
    PROSECUTOR = "prosecutor"
    DEFENDANT = "defendant"

    @property
    def speaker(self) -> Speaker:
        return Speaker(self.value)


@dataclass(frozen=True)
class PersonaProfile:
    display_name: str
    instructions: str


PERSONAS: Dict[Persona, PersonaProfile] = {
    Persona.JUDGE: PersonaProfile(
        display_name="Judge Van der Berg",
        instructions=(
            "You are Judge Van der Berg. Lead the hearing neutrally, ask clarifying questions "
            "and keep order in the courtroom. Only present evidence when it is needed for "
            "clarification. Be brief but authoritative."
        ),
    ),
    Persona.PROSECUTOR: PersonaProfile(
        display_name="Prosecutor Jansen",
        instructions=(
            "You are Public Prosecutor Jansen. Present evidence from the list, ask critical "
            "questions and try to establish guilt. Use the available evidence strategically. "
            "Be professional but assertive."
        ),
    ),
    Persona.DEFENDANT: PersonaProfile(
        display_name="Alex Vermeer",
        instructions=(
            "You are Alex Vermeer, the defendant. React humanly and emotionally to the "
            "accusations. You may be innocent, or guilty with an explanation. Be authentic."
        ),
    ),
}

# The student plays the defendant.
STUDENT_NAME = "Alex Vermeer (Defendant - YOU)"
SYSTEM_NAME = "System"


def get_profile(persona) -> PersonaProfile:
    """Raises ValueError for anything outside the three courtroom personas."""
    return PERSONAS[Persona(persona)]
