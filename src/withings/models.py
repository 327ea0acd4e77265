"""
Withings measure data models.

This module defines the enumerations used to select measure data and the
pydantic models the measure responses decode into. Model fields map to
Withings JSON field names through aliases; fields the API leaves out stay
at their defaults.

Withings API docs: https://developer.withings.com/api-reference#tag/measure
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ValidatedEnum(Enum):
    """Enum with a check for raw API values."""

    @classmethod
    def is_valid(cls, value: Any) -> bool:
        """Whether value is a known member or member value."""
        if isinstance(value, cls):
            return True
        try:
            cls(value)
        except ValueError:
            return False
        return True


class MeasureType(ValidatedEnum):
    """
    Metric tracked by Withings devices.

    Withings API docs: https://developer.withings.com/api-reference#operation/measure-getmeas
    """

    WEIGHT = 1  # kg
    HEIGHT = 4  # meter
    FAT_FREE_MASS = 5  # kg
    FAT_RATIO = 6  # %
    FAT_MASS_WEIGHT = 8  # kg
    DIASTOLIC_BP = 9  # mmHg
    SYSTOLIC_BP = 10  # mmHg
    HEART_PULSE = 11  # bpm
    TEMP = 12  # celsius
    SPO2 = 54  # %
    BODY_TEMP = 71  # celsius
    SKIN_TEMP = 73  # celsius
    MUSCLE_MASS = 76  # kg
    HYDRATION = 77  # kg
    BONE_MASS = 88  # kg
    PULSE_WAVE_VELOCITY = 91  # m/s
    VO2_MAX = 123  # ml/min/kg
    QRS_INTERVAL = 135  # ECG
    PR_INTERVAL = 136  # ECG
    QT_INTERVAL = 137  # ECG
    CORRECTED_QT_INTERVAL = 138  # ECG
    ATRIAL_FIBRILLATION = 139  # PPG


class Category(ValidatedEnum):
    """Real measurements versus user objectives."""

    REAL = 1
    USER_OBJECTIVE = 2


class ActivityField(ValidatedEnum):
    """
    Daily aggregated activity metric.

    Withings API docs: https://developer.withings.com/api-reference#operation/measurev2-getactivity
    """

    STEPS = "steps"
    DISTANCE = "distance"  # meters
    ELEVATION = "elevation"  # floors climbed
    SOFT = "soft"  # seconds
    MODERATE = "moderate"  # seconds
    INTENSE = "intense"  # seconds
    ACTIVE = "active"  # moderate + intense seconds
    CALORIES = "calories"  # active kcal
    TOTAL_CALORIES = "totalcalories"  # kcal
    HR_AVERAGE = "hr_average"
    HR_MIN = "hr_min"
    HR_MAX = "hr_max"
    HR_ZONE_0 = "hr_zone_0"  # seconds in light zone
    HR_ZONE_1 = "hr_zone_1"  # seconds in moderate zone
    HR_ZONE_2 = "hr_zone_2"  # seconds in intense zone
    HR_ZONE_3 = "hr_zone_3"  # seconds in maximal zone


class IntradayActivityField(ValidatedEnum):
    """
    High-resolution activity metric.

    Withings API docs: https://developer.withings.com/api-reference#operation/measurev2-getintradayactivity
    """

    STEPS = "steps"
    ELEVATION = "elevation"
    CALORIES = "calories"
    DISTANCE = "distance"
    STROKE = "stroke"
    POOL_LAP = "pool_lap"
    DURATION = "duration"
    HEART_RATE = "heart_rate"
    SPO2_AUTO = "spo2_auto"


class WorkoutField(ValidatedEnum):
    """
    Workout session metric.

    Withings API docs: https://developer.withings.com/api-reference#operation/measurev2-getworkouts
    """

    CALORIES = "calories"
    INTENSITY = "intensity"
    MANUAL_DISTANCE = "manual_distance"
    MANUAL_CALORIES = "manual_calories"
    HR_AVERAGE = "hr_average"
    HR_MIN = "hr_min"
    HR_MAX = "hr_max"
    HR_ZONE_0 = "hr_zone_0"
    HR_ZONE_1 = "hr_zone_1"
    HR_ZONE_2 = "hr_zone_2"
    HR_ZONE_3 = "hr_zone_3"
    PAUSE_DURATION = "pause_duration"
    ALGO_PAUSE_DURATION = "algo_pause_duration"
    SPO2_AVERAGE = "spo2_average"
    STEPS = "steps"
    DISTANCE = "distance"
    ELEVATION = "elevation"
    POOL_LAPS = "pool_laps"
    STROKES = "strokes"
    POOL_LENGTH = "pool_length"


@dataclass
class MeasureGetOptions:
    """
    Date filters and pagination for measure calls.

    Attributes:
        start_date: Start of a date range query (use with end_date)
        end_date: End of a date range query (use with start_date)
        last_update: Only return data updated since this time; takes
                     precedence over start_date/end_date
        offset: Offset from a previous page's response (0 = from the start)
    """

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    last_update: Optional[datetime] = None
    offset: int = 0


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", protected_namespaces=())


class Measure(_Model):
    """Individual data point; the real value is value * 10^unit."""

    value: int
    type: int
    unit: int = 0
    algo: Optional[int] = None  # Deprecated
    fm: Optional[int] = None  # Deprecated

    @property
    def real_value(self) -> float:
        return self.value * (10 ** self.unit)


class MeasureGroup(_Model):
    group_id: int = Field(alias="grpid")
    attrib: int = 0
    date: int = 0
    created: int = 0
    modified: Optional[int] = None
    category: int = Category.REAL.value
    device_id: Optional[str] = Field(default=None, alias="deviceid")
    measures: List[Measure] = Field(default_factory=list)
    comment: Optional[str] = None  # Deprecated


class Measures(_Model):
    """Body of a getmeas response."""

    update_time: int = Field(default=0, alias="updatetime")  # documented as string, sent as int
    timezone: str = ""
    measure_groups: List[MeasureGroup] = Field(default_factory=list, alias="measuregrps")
    more: bool = False
    offset: int = 0


class Activity(_Model):
    """
    Metrics of a single day's activity.

    Only requested fields are populated; the rest stay None.
    """

    date: str = ""
    timezone: str = ""
    device_id: Optional[str] = Field(default=None, alias="deviceid")
    brand: Optional[int] = None
    is_tracker: bool = False

    steps: Optional[int] = None
    distance: Optional[float] = None  # documented as int, sent as float
    elevation: Optional[float] = None
    soft: Optional[int] = None
    moderate: Optional[int] = None
    intense: Optional[int] = None
    active: Optional[int] = None
    calories: Optional[float] = None
    total_calories: Optional[float] = Field(default=None, alias="totalcalories")
    hr_average: Optional[int] = None
    hr_min: Optional[int] = None
    hr_max: Optional[int] = None
    hr_zone_0: Optional[int] = None
    hr_zone_1: Optional[int] = None
    hr_zone_2: Optional[int] = None
    hr_zone_3: Optional[int] = None


class Activities(_Model):
    """Body of a getactivity response."""

    activities: List[Activity] = Field(default_factory=list)
    more: bool = False
    offset: int = 0


class IntradayActivity(_Model):
    device_id: Optional[str] = Field(default=None, alias="deviceid")
    model: Optional[str] = None
    model_id: Optional[int] = None

    steps: Optional[int] = None
    elevation: Optional[float] = None
    calories: Optional[float] = None
    distance: Optional[float] = None
    stroke: Optional[int] = None
    pool_lap: Optional[int] = None
    duration: Optional[int] = None
    heart_rate: Optional[int] = None
    spo2_auto: Optional[int] = None


class IntradayActivities(_Model):
    """Body of a getintradayactivity response, keyed by epoch timestamp."""

    series: Dict[str, IntradayActivity] = Field(default_factory=dict)

    @field_validator("series", mode="before")
    @classmethod
    def _empty_series(cls, value: Any) -> Any:
        # The API sends [] instead of {} when there is no data
        if value is None or value == []:
            return {}
        return value


class Workout(_Model):
    id: Optional[int] = None
    category: int = 0
    timezone: str = ""
    model: Optional[int] = None
    attrib: Optional[int] = None
    start_date: int = Field(default=0, alias="startdate")
    end_date: int = Field(default=0, alias="enddate")
    date: str = ""
    modified: Optional[int] = None
    device_id: Optional[str] = Field(default=None, alias="deviceid")
    data: Dict[str, Any] = Field(default_factory=dict)


class Workouts(_Model):
    """Body of a getworkouts response."""

    series: List[Workout] = Field(default_factory=list)
    more: bool = False
    offset: int = 0


class GetmeasResponse(_Model):
    body: Measures = Field(default_factory=Measures)


class GetactivityResponse(_Model):
    body: Activities = Field(default_factory=Activities)


class GetintradayactivityResponse(_Model):
    body: IntradayActivities = Field(default_factory=IntradayActivities)


class GetworkoutsResponse(_Model):
    body: Workouts = Field(default_factory=Workouts)
