# Common card, role and power definitions used across the project.

from enum import Enum


class Policy(Enum):
    """Policy card colour. Party membership is reported with the same colours."""

    LIBERAL = "B"
    FASCIST = "R"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str) -> "Policy":
        key = str(text).strip().lower()
        if key in POLICY_ALIASES:
            return POLICY_ALIASES[key]
        raise ValueError(f"Failed to parse single-letter policy name, found {text} instead.")


POLICY_ALIASES = {
    "b": Policy.LIBERAL,
    "l": Policy.LIBERAL,
    "blue": Policy.LIBERAL,
    "liberal": Policy.LIBERAL,
    "r": Policy.FASCIST,
    "f": Policy.FASCIST,
    "red": Policy.FASCIST,
    "fascist": Policy.FASCIST,
}


class SecretRole(Enum):
    LIBERAL = "Liberal"
    FASCIST = "Fascist"
    HITLER = "Hitler"

    def __str__(self) -> str:
        return self.value

    @property
    def is_fascist(self) -> bool:
        return self is not SecretRole.LIBERAL

    @property
    def party(self) -> Policy:
        return Policy.FASCIST if self.is_fascist else Policy.LIBERAL

    @classmethod
    def parse(cls, text: str) -> "SecretRole":
        key = str(text).strip().lower()
        if key in ROLE_ALIASES:
            return ROLE_ALIASES[key]
        raise ValueError(f"Failed to parse role name, found {text} instead.")


ROLE_ALIASES = {
    "h": SecretRole.HITLER,
    "hitler": SecretRole.HITLER,
    "f": SecretRole.FASCIST,
    "fascist": SecretRole.FASCIST,
    "l": SecretRole.LIBERAL,
    "b": SecretRole.LIBERAL,
    "lib": SecretRole.LIBERAL,
    "blue": SecretRole.LIBERAL,
    "liberal": SecretRole.LIBERAL,
}


class PowerKind(Enum):
    """Presidential power unlocked by a fascist policy."""

    NONE = "none"
    INVESTIGATE = "investigate"
    SPECIAL_ELECTION = "special_election"
    POLICY_PEEK = "policy_peek"
    EXECUTION = "execution"
    VETO = "veto"

    def __str__(self) -> str:
        return self.value

    @property
    def has_payload(self) -> bool:
        return self not in (PowerKind.NONE, PowerKind.VETO)


# Cards a president draws for a regular legislative session.
DRAW_SIZE = 3
# Cards the chancellor receives after the president discards one.
CHANCELLOR_HAND = DRAW_SIZE - 1
# Minimum draw pile size before the pile is reshuffled.
RESHUFFLE_THRESHOLD = 3
