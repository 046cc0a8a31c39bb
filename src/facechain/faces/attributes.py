"""Age and gender prediction types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from facechain.errors import ValidationError
from facechain.validation import is_valid_number, is_valid_probability


class Gender(StrEnum):
    MALE = "male"
    FEMALE = "female"


@dataclass(frozen=True)
class AgeAndGenderPrediction:
    """Raw output of an age/gender backend for one face crop."""

    age: float
    gender: Gender
    gender_probability: float

    def __post_init__(self) -> None:
        callee = "AgeAndGenderPrediction.__init__"
        if not is_valid_number(self.age) or self.age < 0:
            raise ValidationError(callee, "age", self.age, "a non-negative number")
        if not isinstance(self.gender, Gender):
            raise ValidationError(callee, "gender", self.gender, "a Gender")
        if not is_valid_probability(self.gender_probability):
            raise ValidationError(callee, "gender_probability", self.gender_probability, "a number between [0, 1]")
