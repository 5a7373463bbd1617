"""Unit tests for the response normalizer."""
import pytest

from agri_dashboard import calculations as calc
from agri_dashboard.errors import InvalidParameter
from agri_dashboard.models import (
    BigDataCloudResponse,
    LocationInfo,
    NDVIEntry,
    OpenCageResponse,
    Polygon,
    SoilReading,
    SunTimes,
    WeatherReading,
)


def ndvi_records(*means):
    return [{"ndvi": {"mean": m}} for m in means]


class TestUnits:
    def test_kelvin_to_celsius(self):
        assert calc.kelvin_to_celsius(300.15) == 27
        assert calc.kelvin_to_celsius(273.15) == 0

    def test_rounds_half_up(self):
        assert calc.round_half_up(0.5) == 1
        assert calc.round_half_up(2.5) == 3
        assert calc.round_half_up(-0.6) == -1

    def test_celsius_passthrough_is_rounded(self):
        assert calc.to_celsius(26.6, kelvin=False) == 27
        assert calc.to_celsius(None, kelvin=True) == 0

    @pytest.mark.parametrize("code,icon", [(741, "50d"), (999, "01d"), (211, "11d"), (502, "10d"), (804, "01d")])
    def test_weather_icon(self, code, icon):
        assert calc.weather_icon(code) == icon

    def test_area_hectares(self):
        assert calc.area_hectares(123456) == "12.35"
        assert calc.area_hectares(52000.0) == "5.20"
        assert calc.area_hectares(None) == "N/A"

    def test_iso_formats(self):
        assert calc.iso_utc(1700000000) == "2023-11-14T22:13:20.000Z"
        assert calc.iso_date(1700000000) == "2023-11-14"
        assert calc.epoch_seconds("2023-11-14T00:50:00+00:00") == 1699923000


class TestCropHealth:
    @pytest.mark.parametrize("mean,status", [(0.65, "Excellent"), (0.45, "Good"), (0.25, "Fair"), (0.1, "Poor")])
    def test_health_buckets(self, mean, status):
        assert calc.health_status(ndvi_records(mean)) == status

    def test_health_uses_latest_record(self):
        assert calc.health_status(ndvi_records(0.7, 0.3)) == "Fair"

    def test_no_data(self):
        assert calc.health_status([]) == "No data"

    def test_trend(self):
        assert calc.ndvi_trend(ndvi_records(0.42, 0.65)) == pytest.approx(0.23)
        assert calc.ndvi_trend(ndvi_records(0.5)) == 0

    def test_normalize_ndvi_defaults_and_order(self):
        entries = [NDVIEntry(dt=1700000000, cl=3), NDVIEntry(dt=1600000000, data={"mean": 0.5})]
        out = calc.normalize_ndvi(entries)
        assert [r["timestamp"] for r in out] == [1600000000, 1700000000]
        assert out[1]["ndvi"] == {"min": 0, "max": 0, "mean": 0, "std": 0, "num": 0}
        assert out[1]["cloud_coverage"] == 3
        assert out[0]["date"] == "2020-09-13"


class TestAdvisories:
    def test_irrigation(self):
        assert calc.irrigation_advice(55) == "Consider irrigation"
        assert calc.irrigation_advice(75) == "Adequate moisture"
        assert calc.irrigation_advice(None) == "Adequate moisture"

    def test_fertilization(self):
        assert calc.fertilization_advice(0.3) == "Consider fertilizer application"
        assert calc.fertilization_advice(0.5) == "Crop health appears good"
        assert calc.fertilization_advice(None) == "Crop health appears good"

    def test_pest_risk(self):
        assert calc.pest_advice(27, 75) == "High risk conditions for pests"
        assert calc.pest_advice(25, 75) == "Normal monitoring sufficient"
        assert calc.pest_advice(30, 70) == "Normal monitoring sufficient"


class TestWeather:
    def test_normalize_weather(self, sample_weather, sample_sun):
        location = calc.default_location()
        reading = WeatherReading.model_validate(sample_weather)
        out = calc.normalize_weather(reading, location, 10.0, 78.0, sun=SunTimes.model_validate(sample_sun))

        assert out["main"] == {
            "temp": 27, "feels_like": 29, "temp_min": 26, "temp_max": 28, "humidity": 75, "pressure": 1010,
        }
        assert out["weather"] == [{"id": 741, "main": "Fog", "description": "fog", "icon": "50d"}]
        assert out["sys"] == {"country": "IN", "state": "", "sunrise": 1699923000, "sunset": 1699965000}
        assert out["coordinates"] == {"lat": 10.0, "lon": 78.0}
        assert out["dt"] == 1700000000

    def test_missing_fields_default(self):
        out = calc.normalize_weather(WeatherReading(), calc.default_location(), 1.0, 2.0)
        assert out["main"]["temp"] == 0
        assert out["main"]["humidity"] == 0
        assert out["wind"] == {"speed": 0, "deg": 0}
        assert out["clouds"] == {"all": 0}
        assert out["weather"][0]["description"] == "clear sky"
        assert out["dt"] > 0

    def test_forecast_entry(self, sample_weather):
        entry = calc.normalize_forecast_entry(WeatherReading.model_validate(sample_weather))
        assert entry["dt_txt"] == "2023-11-14T22:13:20.000Z"
        assert entry["rain"] is None
        assert entry["main"]["temp"] == 27

    def test_forecast_country_is_always_a_code(self, sample_weather):
        location = LocationInfo(name="Colombo", country="Sri Lanka", fullName="Colombo")
        out = calc.normalize_forecast([WeatherReading.model_validate(sample_weather)], location, 6.9, 79.8)
        assert out["city"]["country"] == "IN"

    def test_openweather_celsius_is_not_converted(self):
        reading = WeatherReading.model_validate({"main": {"temp": 31.4, "humidity": 60}})
        assert calc.normalize_main(reading.main, kelvin=False)["temp"] == 31


class TestSoilAndPolygons:
    def test_normalize_soil(self, sample_soil):
        out = calc.normalize_soil("poly-1", SoilReading.model_validate(sample_soil))
        assert out["surface_temp"] == 27
        assert out["soil_temp_10cm"] == 25
        assert out["moisture"] == 0.21
        assert out["date"] == "2023-11-14T22:13:20.000Z"

    def test_missing_soil_values_are_null(self):
        out = calc.normalize_soil("poly-1", SoilReading(dt=1700000000))
        assert out["surface_temp"] is None
        assert out["moisture"] is None

    def test_polygon_summary_keeps_provider_fields(self, sample_polygon):
        out = calc.polygon_summary(Polygon.model_validate(sample_polygon))
        assert out["name"] == "North Field"
        assert out["area_hectares"] == "12.35"
        assert out["geo_json"]["type"] == "Feature"

    def test_polygon_summary_without_area(self):
        out = calc.polygon_summary(Polygon(id="x", name="Empty"))
        assert out["area_hectares"] == "N/A"
        assert out["center"] is None


class TestRing:
    def feature(self, ring):
        return {"type": "Feature", "properties": {}, "geometry": {"type": "Polygon", "coordinates": [ring]}}

    def test_open_ring_is_closed(self):
        ring = [[78.70, 10.79], [78.71, 10.79], [78.71, 10.80], [78.70, 10.80]]
        out = calc.validate_ring(self.feature(ring))
        closed = out["geometry"]["coordinates"][0]
        assert len(closed) == 5
        assert closed[0] == closed[-1]
        assert len(ring) == 4

    def test_bare_geometry(self):
        geometry = {"type": "Polygon", "coordinates": [[[1, 1], [2, 1], [2, 2], [1, 1]]]}
        assert calc.validate_ring(geometry)["coordinates"][0][-1] == [1.0, 1.0]

    def test_out_of_range(self):
        with pytest.raises(InvalidParameter):
            calc.validate_ring(self.feature([[200, 10], [78, 10], [78, 11]]))

    def test_too_few_points(self):
        with pytest.raises(InvalidParameter):
            calc.validate_ring(self.feature([[78, 10], [78, 11], [78, 10]]))

    def test_not_a_polygon(self):
        with pytest.raises(InvalidParameter):
            calc.validate_ring({"type": "Point", "coordinates": [1, 2]})


class TestLocations:
    def test_bigdatacloud(self, sample_geocode):
        loc = calc.location_from_bigdatacloud(BigDataCloudResponse.model_validate(sample_geocode))
        assert loc.name == "Tiruchirappalli"
        assert loc.fullName == "Tiruchirappalli, Tamil Nadu"
        assert loc.country == "India"

    def test_opencage_with_village(self):
        resp = OpenCageResponse.model_validate({"results": [{"components": {
            "village": "Manachanallur", "city": "Tiruchirappalli", "state": "Tamil Nadu", "country": "India",
        }}]})
        loc = calc.location_from_opencage(resp)
        assert loc.name == "Manachanallur"
        assert loc.fullName == "Manachanallur, Tiruchirappalli, Tamil Nadu"

    def test_opencage_no_results(self):
        with pytest.raises(ValueError):
            calc.location_from_opencage(OpenCageResponse())

    def test_country_code(self):
        assert calc.country_code(calc.default_location(), "LK") == "IN"
