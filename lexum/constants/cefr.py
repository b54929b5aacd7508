from enum import Enum


class CEFRLevel(str, Enum):
    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"


CEFR_ORDER = [level.value for level in CEFRLevel]

DEFAULT_CEFR = CEFRLevel.B1.value
