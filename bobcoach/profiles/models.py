# -*- coding: utf-8 -*-
"""Profiles — Pydantic models."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

Gender = Literal["male", "female", "other"]
Goal = Literal["cut", "gain", "maintain"]
Units = Literal["metric", "imperial"]
DisplayMode = Literal["standard", "stealth"]

# Fields a client may patch one at a time.
EDITABLE_FIELDS = (
    "name",
    "current_weight",
    "target_weight",
    "height",
    "age",
    "gender",
    "activity_level",
    "goal",
    "preferred_units",
    "timezone",
)


def _check_timezone(value: str) -> str:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {value}") from exc
    return value


class ProfileUpsertRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    current_weight: float = Field(..., gt=0, le=700)
    target_weight: float = Field(..., gt=0, le=700)
    height: float = Field(..., gt=0, le=300, description="cm")
    age: int = Field(..., ge=1, le=120)
    gender: Gender
    activity_level: str = Field("moderate", max_length=32)
    goal: Goal
    preferred_units: Units = "metric"
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def _valid_timezone(cls, value: str) -> str:
        return _check_timezone(value)


class UserProfile(BaseModel):
    id: str
    user_id: str
    name: str
    current_weight: float
    target_weight: float
    height: float
    age: int
    gender: str
    activity_level: str
    goal: str
    daily_calorie_target: int
    protein_target: int
    carbs_target: Optional[int] = None
    fat_target: Optional[int] = None
    preferred_units: str
    timezone: str
    onboarding_completed: bool
    created_at: str
    updated_at: str


class ProfileFieldUpdateRequest(BaseModel):
    field: str
    value: Any

    @field_validator("field")
    @classmethod
    def _editable(cls, value: str) -> str:
        if value not in EDITABLE_FIELDS:
            raise ValueError(f"Field '{value}' cannot be updated")
        return value


class ReminderTimes(BaseModel):
    weigh_in: Optional[str] = "08:00"
    breakfast: Optional[str] = None
    lunch: Optional[str] = None
    dinner: Optional[str] = None


class ReminderSettings(BaseModel):
    weigh_in_reminder: bool = True
    meal_reminders: bool = False
    reminder_times: ReminderTimes = Field(default_factory=ReminderTimes)


class UserPreferences(BaseModel):
    user_id: str
    display_mode: DisplayMode = "standard"
    show_calories: bool = True
    show_protein: bool = True
    show_carbs: bool = True
    show_fats: bool = True
    language: str = "en"
    dark_mode: bool = False
    reminder_settings: ReminderSettings = Field(default_factory=ReminderSettings)


class PreferencesUpdateRequest(BaseModel):
    display_mode: Optional[DisplayMode] = None
    show_calories: Optional[bool] = None
    show_protein: Optional[bool] = None
    show_carbs: Optional[bool] = None
    show_fats: Optional[bool] = None
    language: Optional[str] = Field(None, max_length=16)
    dark_mode: Optional[bool] = None
    reminder_settings: Optional[ReminderSettings] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ---- dietary preferences ----

COMMON_RESTRICTIONS = (
    "vegan",
    "vegetarian",
    "gluten-free",
    "dairy-free",
    "nut-free",
    "soy-free",
    "egg-free",
    "shellfish-free",
    "keto",
    "low-carb",
    "diabetic",
    "halal",
    "kosher",
)

DEFAULT_EATING_START_HOUR = 12
DEFAULT_EATING_END_HOUR = 20


def normalize_restriction(value: str) -> str:
    restriction = " ".join(str(value).split()).lower()
    if not restriction:
        raise ValueError("Restriction must not be blank")
    return restriction


def _check_days(days: Optional[List[int]]) -> Optional[List[int]]:
    if days is None:
        return None
    if any(day < 0 or day > 6 for day in days):
        raise ValueError("days_of_week must be 0 (Sunday) to 6 (Saturday)")
    return sorted(set(days))


class IntermittentFasting(BaseModel):
    """Eating window in the user's local hours; outside it the user is fasting."""

    enabled: bool = True
    start_hour: int = Field(DEFAULT_EATING_START_HOUR, ge=0, le=23)
    end_hour: int = Field(DEFAULT_EATING_END_HOUR, ge=0, le=23)
    days_of_week: Optional[List[int]] = Field(None, description="0 = Sunday; empty or null means every day")

    _days = field_validator("days_of_week")(_check_days)


class DietaryPreferencesRequest(BaseModel):
    restrictions: List[str] = Field(default_factory=list, max_length=30)
    custom_notes: Optional[str] = Field(None, max_length=1000)
    intermittent_fasting: Optional[IntermittentFasting] = None

    @field_validator("restrictions")
    @classmethod
    def _normalize(cls, values: List[str]) -> List[str]:
        seen: List[str] = []
        for value in values:
            restriction = normalize_restriction(value)
            if restriction not in seen:
                seen.append(restriction)
        return seen


class RestrictionRequest(BaseModel):
    restriction: str = Field(..., min_length=1, max_length=50)

    _restriction = field_validator("restriction")(normalize_restriction)


class FastingUpdateRequest(BaseModel):
    enabled: bool
    start_hour: Optional[int] = Field(None, ge=0, le=23)
    end_hour: Optional[int] = Field(None, ge=0, le=23)
    days_of_week: Optional[List[int]] = None

    _days = field_validator("days_of_week")(_check_days)


class DietaryPreferences(BaseModel):
    user_id: str
    restrictions: List[str] = Field(default_factory=list)
    custom_notes: Optional[str] = None
    intermittent_fasting: Optional[IntermittentFasting] = None
    in_fasting_window: bool = False
    created_at: str
    updated_at: str


class CommonRestrictions(BaseModel):
    restrictions: List[str]
