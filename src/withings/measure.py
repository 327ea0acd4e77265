"""
Measure service for the Withings API.

Wraps the measure related actions (getmeas, getactivity,
getintradayactivity, getworkouts) on top of the client's form POST and
envelope decoding. List calls return the pagination cursor in the decoded
body; the iter_* helpers follow it until the last page.

Withings API docs: https://developer.withings.com/api-reference#tag/measure
"""

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional, Type

from . import endpoints
from .context import Context
from .models import (
    Activities,
    ActivityField,
    Category,
    GetactivityResponse,
    GetintradayactivityResponse,
    GetmeasResponse,
    GetworkoutsResponse,
    IntradayActivities,
    IntradayActivityField,
    MeasureGetOptions,
    Measures,
    MeasureType,
    Workouts,
    WorkoutField,
    ValidatedEnum,
)

if TYPE_CHECKING:
    from .client import WithingsClient

logger = logging.getLogger(__name__)


def _select(
    enum_cls: Type[ValidatedEnum], values: Iterable[Any], strict: bool, what: str
) -> List[ValidatedEnum]:
    """
    Convert raw values to enum members.

    In strict mode an unknown value raises ValueError. Otherwise unknown
    values are dropped and logged, matching the permissive behaviour older
    clients relied on.

    Raises:
        ValueError: If nothing valid remains, or on an unknown value in strict mode
    """
    selected: List[ValidatedEnum] = []
    invalid: List[Any] = []

    for value in values:
        if enum_cls.is_valid(value):
            selected.append(value if isinstance(value, enum_cls) else enum_cls(value))
        else:
            invalid.append(value)

    if invalid:
        if strict:
            raise ValueError(f"Invalid {what}: {invalid}")
        logger.warning(f"Ignoring invalid {what}: {invalid}")

    if not selected:
        raise ValueError(f"need at least one {what}")

    return selected


def _join(values: Iterable[ValidatedEnum]) -> str:
    return ",".join(str(v.value) for v in values)


def _add_date_filters(form: Dict[str, str], options: MeasureGetOptions, ymd: bool) -> None:
    """Add lastupdate or a start/end range to the form."""
    if options.last_update is not None:
        form["lastupdate"] = str(int(options.last_update.timestamp()))
    elif options.start_date is not None and options.end_date is not None:
        if ymd:
            form["startdateymd"] = options.start_date.strftime("%Y-%m-%d")
            form["enddateymd"] = options.end_date.strftime("%Y-%m-%d")
        else:
            form["startdate"] = str(int(options.start_date.timestamp()))
            form["enddate"] = str(int(options.end_date.timestamp()))

    if options.offset > 0:
        form["offset"] = str(options.offset)


class MeasureService:
    """
    Measure related methods of the Withings API.

    Created by WithingsClient and reached through client.measure.
    """

    def __init__(self, client: "WithingsClient"):
        self.client = client

    def getmeas(
        self,
        measure_types: Iterable[Any],
        category: Any = Category.REAL,
        options: Optional[MeasureGetOptions] = None,
        ctx: Optional[Context] = None,
        strict: bool = True,
    ) -> Measures:
        """
        Get measures stored for the user.

        Args:
            measure_types: MeasureType members (or their integer values)
            category: Real measures or user objectives
            options: Date filters and offset
            ctx: Cancellation context
            strict: Reject unknown measure types instead of dropping them

        Returns:
            Measures body, including the pagination cursor

        Raises:
            ValueError: If no valid measure type is given
            WithingsAPIError: If the API returns a non-zero status

        Withings API docs: https://developer.withings.com/api-reference#operation/measure-getmeas
        """
        types = _select(MeasureType, measure_types, strict, "measure type")
        category = _select(Category, [category], True, "category")[0]
        options = options or MeasureGetOptions()

        form = {"action": "getmeas", "category": str(category.value)}
        if len(types) == 1:
            form["meastype"] = str(types[0].value)
        else:
            form["meastypes"] = _join(types)
        _add_date_filters(form, options, ymd=False)

        logger.info(f"Fetching measures ({len(types)} types, offset {options.offset})")
        response = self.client.post_form(endpoints.MEASURE, form, GetmeasResponse, ctx=ctx)
        return response.data.body

    def getactivity(
        self,
        fields: Iterable[Any],
        options: Optional[MeasureGetOptions] = None,
        ctx: Optional[Context] = None,
        strict: bool = True,
    ) -> Activities:
        """
        Get daily aggregated activity data.

        Withings API docs: https://developer.withings.com/api-reference#operation/measurev2-getactivity
        """
        selected = _select(ActivityField, fields, strict, "activity data field")
        options = options or MeasureGetOptions()

        form = {"action": "getactivity", "data_fields": _join(selected)}
        _add_date_filters(form, options, ymd=True)

        logger.info(f"Fetching activities (offset {options.offset})")
        response = self.client.post_form(
            endpoints.MEASURE_V2, form, GetactivityResponse, ctx=ctx
        )
        return response.data.body

    def getintradayactivity(
        self,
        fields: Iterable[Any],
        options: Optional[MeasureGetOptions] = None,
        ctx: Optional[Context] = None,
        strict: bool = True,
    ) -> IntradayActivities:
        """
        Get activity data with a fine granularity.

        Only the start/end range of the options is used; this call has no
        lastupdate filter and no pagination.

        Withings API docs: https://developer.withings.com/api-reference#operation/measurev2-getintradayactivity
        """
        selected = _select(IntradayActivityField, fields, strict, "intraday activity data field")
        options = options or MeasureGetOptions()

        form = {"action": "getintradayactivity", "data_fields": _join(selected)}
        if options.start_date is not None and options.end_date is not None:
            form["startdate"] = str(int(options.start_date.timestamp()))
            form["enddate"] = str(int(options.end_date.timestamp()))

        logger.info("Fetching intraday activity")
        response = self.client.post_form(
            endpoints.MEASURE_V2, form, GetintradayactivityResponse, ctx=ctx
        )
        return response.data.body

    def getworkouts(
        self,
        fields: Iterable[Any],
        options: Optional[MeasureGetOptions] = None,
        ctx: Optional[Context] = None,
        strict: bool = True,
    ) -> Workouts:
        """
        Get workout sessions recorded by trackers.

        Withings API docs: https://developer.withings.com/api-reference#operation/measurev2-getworkouts
        """
        selected = _select(WorkoutField, fields, strict, "workout data field")
        options = options or MeasureGetOptions()

        form = {"action": "getworkouts", "data_fields": _join(selected)}
        _add_date_filters(form, options, ymd=True)

        logger.info(f"Fetching workouts (offset {options.offset})")
        response = self.client.post_form(
            endpoints.MEASURE_V2, form, GetworkoutsResponse, ctx=ctx
        )
        return response.data.body

    def iter_getmeas(
        self,
        measure_types: Iterable[Any],
        category: Any = Category.REAL,
        options: Optional[MeasureGetOptions] = None,
        ctx: Optional[Context] = None,
        strict: bool = True,
    ) -> Iterator[Measures]:
        """Yield every page of getmeas, starting at options.offset."""
        measure_types = list(measure_types)
        options = options or MeasureGetOptions()
        while True:
            page = self.getmeas(measure_types, category, options, ctx=ctx, strict=strict)
            yield page
            if not page.more:
                return
            options = replace(options, offset=page.offset)

    def iter_getactivity(
        self,
        fields: Iterable[Any],
        options: Optional[MeasureGetOptions] = None,
        ctx: Optional[Context] = None,
        strict: bool = True,
    ) -> Iterator[Activities]:
        """Yield every page of getactivity, starting at options.offset."""
        fields = list(fields)
        options = options or MeasureGetOptions()
        while True:
            page = self.getactivity(fields, options, ctx=ctx, strict=strict)
            yield page
            if not page.more:
                return
            options = replace(options, offset=page.offset)
