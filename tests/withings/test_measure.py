"""Tests for the measure service."""

from datetime import datetime, timezone
from unittest import mock

import pytest
import requests

from withings.client import Response, WithingsClient
from withings.endpoints import MEASURE, MEASURE_V2
from withings.measure import MeasureService
from withings.models import (
    Activities,
    ActivityField,
    Category,
    GetactivityResponse,
    GetintradayactivityResponse,
    GetmeasResponse,
    GetworkoutsResponse,
    IntradayActivityField,
    MeasureGetOptions,
    Measures,
    MeasureType,
    WorkoutField,
)

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
END = datetime(2024, 1, 31, tzinfo=timezone.utc)


def _response(data):
    return Response(http_response=mock.Mock(spec=requests.Response), data=data)


class TestMeasureService:
    """Tests for MeasureService request building."""

    @pytest.fixture
    def client(self):
        client = mock.Mock(spec=WithingsClient)
        client.post_form.return_value = _response(GetmeasResponse())
        return client

    @pytest.fixture
    def service(self, client):
        return MeasureService(client)

    def _form(self, client):
        return client.post_form.call_args[0][1]

    def test_getmeas_single_type(self, service, client):
        """A single measure type is sent as meastype."""
        result = service.getmeas([MeasureType.WEIGHT])

        path, form, result_type = client.post_form.call_args[0]
        assert path == MEASURE
        assert result_type is GetmeasResponse
        assert form == {"action": "getmeas", "category": "1", "meastype": "1"}
        assert isinstance(result, Measures)

    def test_getmeas_multiple_types(self, service, client):
        """Several measure types are sent comma-joined as meastypes."""
        service.getmeas([MeasureType.WEIGHT, MeasureType.FAT_RATIO, MeasureType.HEART_PULSE])

        form = self._form(client)
        assert form["meastypes"] == "1,6,11"
        assert "meastype" not in form

    def test_getmeas_accepts_raw_values(self, service, client):
        service.getmeas([1, 4], Category.USER_OBJECTIVE)

        form = self._form(client)
        assert form["meastypes"] == "1,4"
        assert form["category"] == "2"

    def test_getmeas_date_range(self, service, client):
        """Start and end dates are sent as epoch seconds."""
        service.getmeas([MeasureType.WEIGHT], options=MeasureGetOptions(start_date=START, end_date=END))

        form = self._form(client)
        assert form["startdate"] == str(int(START.timestamp()))
        assert form["enddate"] == str(int(END.timestamp()))
        assert "lastupdate" not in form
        assert "offset" not in form

    def test_getmeas_last_update_wins(self, service, client):
        """lastupdate replaces the date range."""
        options = MeasureGetOptions(start_date=START, end_date=END, last_update=END, offset=5)

        service.getmeas([MeasureType.WEIGHT], options=options)

        form = self._form(client)
        assert form["lastupdate"] == str(int(END.timestamp()))
        assert "startdate" not in form
        assert form["offset"] == "5"

    def test_getmeas_passes_context(self, service, client):
        ctx = mock.Mock()

        service.getmeas([MeasureType.WEIGHT], ctx=ctx)

        assert client.post_form.call_args[1]["ctx"] is ctx

    def test_getmeas_empty_selection_raises(self, service, client):
        """No measure types fails before any request."""
        with pytest.raises(ValueError, match="at least one"):
            service.getmeas([])

        client.post_form.assert_not_called()

    def test_getmeas_invalid_type_strict(self, service, client):
        """Unknown measure types are rejected by default."""
        with pytest.raises(ValueError, match="Invalid measure type"):
            service.getmeas([MeasureType.WEIGHT, 999])

        client.post_form.assert_not_called()

    def test_getmeas_invalid_type_permissive(self, service, client, caplog):
        """strict=False drops unknown measure types with a warning."""
        service.getmeas([MeasureType.WEIGHT, 999], strict=False)

        assert self._form(client)["meastype"] == "1"
        assert "999" in caplog.text

    def test_getmeas_only_invalid_types_permissive(self, service, client):
        with pytest.raises(ValueError, match="at least one"):
            service.getmeas([999], strict=False)

    def test_getmeas_invalid_category(self, service):
        with pytest.raises(ValueError):
            service.getmeas([MeasureType.WEIGHT], category=7)

    def test_getactivity(self, service, client):
        """getactivity sends data_fields and YMD dates to v2/measure."""
        client.post_form.return_value = _response(GetactivityResponse())

        result = service.getactivity(
            [ActivityField.STEPS, ActivityField.TOTAL_CALORIES],
            MeasureGetOptions(start_date=START, end_date=END),
        )

        path, form, result_type = client.post_form.call_args[0]
        assert path == MEASURE_V2
        assert result_type is GetactivityResponse
        assert form == {
            "action": "getactivity",
            "data_fields": "steps,totalcalories",
            "startdateymd": "2024-01-01",
            "enddateymd": "2024-01-31",
        }
        assert isinstance(result, Activities)

    def test_getactivity_empty_fields_raises(self, service):
        with pytest.raises(ValueError):
            service.getactivity([])

    def test_getintradayactivity(self, service, client):
        """Intraday activity uses epoch dates and ignores lastupdate."""
        client.post_form.return_value = _response(GetintradayactivityResponse())

        service.getintradayactivity(
            [IntradayActivityField.HEART_RATE, "steps"],
            MeasureGetOptions(start_date=START, end_date=END, last_update=END),
        )

        form = self._form(client)
        assert form["action"] == "getintradayactivity"
        assert form["data_fields"] == "heart_rate,steps"
        assert form["startdate"] == str(int(START.timestamp()))
        assert "lastupdate" not in form

    def test_getworkouts(self, service, client):
        client.post_form.return_value = _response(GetworkoutsResponse())

        service.getworkouts([WorkoutField.CALORIES, WorkoutField.HR_AVERAGE], MeasureGetOptions(offset=3))

        path, form, _ = client.post_form.call_args[0]
        assert path == MEASURE_V2
        assert form == {"action": "getworkouts", "data_fields": "calories,hr_average", "offset": "3"}

    def test_iter_getmeas_follows_pagination(self, service, client):
        """iter_getmeas requests pages until more is false."""
        client.post_form.side_effect = [
            _response(GetmeasResponse(body=Measures(more=True, offset=10))),
            _response(GetmeasResponse(body=Measures(more=True, offset=20))),
            _response(GetmeasResponse(body=Measures(more=False, offset=0))),
        ]

        pages = list(service.iter_getmeas([MeasureType.WEIGHT]))

        assert len(pages) == 3
        offsets = [c[0][1].get("offset") for c in client.post_form.call_args_list]
        assert offsets == [None, "10", "20"]

    def test_iter_getactivity_single_page(self, service, client):
        client.post_form.return_value = _response(GetactivityResponse())

        pages = list(service.iter_getactivity([ActivityField.STEPS]))

        assert len(pages) == 1
        client.post_form.assert_called_once()


class TestMeasureServiceDecoding:
    """End-to-end decoding through the client with a mocked session."""

    @pytest.fixture
    def session(self):
        session = requests.Session()
        session.send = mock.Mock()
        return session

    def test_getmeas_decodes_groups(self, session, make_response):
        session.send.return_value = make_response(
            {
                "status": 0,
                "body": {
                    "updatetime": 1704067200,
                    "timezone": "Europe/Paris",
                    "measuregrps": [
                        {
                            "grpid": 12,
                            "attrib": 0,
                            "date": 1704067200,
                            "created": 1704067300,
                            "category": 1,
                            "deviceid": "abc",
                            "measures": [{"value": 72345, "type": 1, "unit": -3}],
                        }
                    ],
                    "more": 1,
                    "offset": 1,
                },
            }
        )
        client = WithingsClient(session=session)

        measures = client.measure.getmeas([MeasureType.WEIGHT])

        assert measures.timezone == "Europe/Paris"
        assert measures.more is True
        group = measures.measure_groups[0]
        assert group.group_id == 12
        assert group.device_id == "abc"
        assert group.measures[0].real_value == pytest.approx(72.345)

    def test_getintradayactivity_empty_series(self, session, make_response):
        """An empty series sent as [] decodes to an empty mapping."""
        session.send.return_value = make_response({"status": 0, "body": {"series": []}})
        client = WithingsClient(session=session)

        result = client.measure.getintradayactivity([IntradayActivityField.STEPS])

        assert result.series == {}

    def test_getworkouts_decodes_series(self, session, make_response):
        session.send.return_value = make_response(
            {
                "status": 0,
                "body": {
                    "series": [
                        {
                            "id": 1,
                            "category": 7,
                            "startdate": 1704067200,
                            "enddate": 1704070800,
                            "date": "2024-01-01",
                            "data": {"calories": 250},
                        }
                    ],
                    "more": False,
                    "offset": 0,
                },
            }
        )
        client = WithingsClient(session=session)

        workouts = client.measure.getworkouts([WorkoutField.CALORIES])

        assert workouts.series[0].start_date == 1704067200
        assert workouts.series[0].data["calories"] == 250
