import httpx
import pytest

from openweather_mcp.config import Settings
from openweather_mcp.errors import ToolExecutionError
from openweather_mcp.main import create_runtime


def test_both_tools_are_registered(registry):
    assert [tool.name for tool in registry.list_tools()] == [
        "get_current_weather",
        "find_location_info",
    ]
    weather_schema = registry.list_tools()[0].inputSchema
    assert weather_schema["required"] == ["location"]
    assert weather_schema["properties"]["units"]["enum"] == ["metric", "imperial", "standard"]
    assert weather_schema["properties"]["units"]["default"] == "metric"


@pytest.mark.anyio
async def test_weather_defaults_to_metric(registry, upstream):
    result = await registry.invoke("get_current_weather", {"location": "Tokyo, Japan"})

    assert result == {
        "location_found": "Tokyo",
        "description": "broken clouds",
        "temperature": 18.4,
        "feels_like": 17.9,
        "humidity_percent": 72,
        "wind_speed": 3.6,
        "units": "metric",
    }
    params = upstream.requests[0].url.params
    assert params["q"] == "Tokyo, Japan"
    assert params["appid"] == "test-key"
    assert params["units"] == "metric"


@pytest.mark.anyio
async def test_weather_passes_requested_units(registry, upstream):
    result = await registry.invoke("get_current_weather", {"location": "Austin, TX", "units": "imperial"})

    assert result["units"] == "imperial"
    assert upstream.requests[0].url.params["units"] == "imperial"


@pytest.mark.anyio
async def test_weather_missing_fields_fall_back(registry, upstream):
    upstream.weather = lambda request: httpx.Response(200, json={"cod": 200, "name": "Nowhere"})

    result = await registry.invoke("get_current_weather", {"location": "Nowhere"})

    assert result["description"] == "Unknown"
    assert result["temperature"] == 0
    assert result["wind_speed"] == 0


@pytest.mark.anyio
async def test_weather_upstream_error_message_is_wrapped(registry, upstream):
    upstream.weather = lambda request: httpx.Response(404, json={"cod": "404", "message": "city not found"})

    with pytest.raises(ToolExecutionError) as excinfo:
        await registry.invoke("get_current_weather", {"location": "Atlantis"})

    assert str(excinfo.value) == "Failed to get weather: city not found"


@pytest.mark.anyio
async def test_weather_non_200_cod_in_body(registry, upstream):
    upstream.weather = lambda request: httpx.Response(200, json={"cod": "401", "message": "Invalid API key"})

    with pytest.raises(ToolExecutionError) as excinfo:
        await registry.invoke("get_current_weather", {"location": "Berlin"})

    assert "Invalid API key" in str(excinfo.value)


@pytest.mark.anyio
async def test_weather_network_failure(registry, upstream):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    upstream.weather = refuse

    with pytest.raises(ToolExecutionError) as excinfo:
        await registry.invoke("get_current_weather", {"location": "Berlin"})

    assert str(excinfo.value) == "Failed to get weather: connection refused"


@pytest.mark.anyio
async def test_weather_without_api_key_fails_at_call_time(upstream):
    settings = Settings(_env_file=None, OPENWEATHERMAP_API_KEY=None)
    runtime = create_runtime(settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(upstream)))

    with pytest.raises(ToolExecutionError) as excinfo:
        await runtime.registry.invoke("get_current_weather", {"location": "Tokyo"})

    assert str(excinfo.value) == "Server configuration error: Weather API key missing."
    assert upstream.requests == []

    # The geocoding tool is unaffected.
    result = await runtime.registry.invoke("find_location_info", {"query": "Statue of Liberty"})
    assert result["display_name"].startswith("Statue of Liberty")


@pytest.mark.anyio
async def test_location_info_is_normalized(registry, upstream):
    result = await registry.invoke("find_location_info", {"query": "Statue of Liberty"})

    assert list(result) == [
        "place_id",
        "licence",
        "osm_type",
        "osm_id",
        "boundingbox",
        "latitude",
        "longitude",
        "display_name",
        "class",
        "type",
        "importance",
    ]
    assert result["latitude"] == "40.689253199999996"
    assert result["longitude"] == "-74.04454817144321"
    assert result["class"] == "tourism"

    request = upstream.requests[0]
    assert request.url.params["q"] == "Statue of Liberty"
    assert request.url.params["format"] == "json"
    assert request.url.params["limit"] == "1"
    assert request.headers["User-Agent"] == "openweather-mcp-server/0.1"


@pytest.mark.anyio
async def test_location_info_empty_result_mentions_query(registry, upstream):
    upstream.geocoding = lambda request: httpx.Response(200, json=[])

    with pytest.raises(ToolExecutionError) as excinfo:
        await registry.invoke("find_location_info", {"query": "Statue of Liberty"})

    assert "Statue of Liberty" in str(excinfo.value)
    assert str(excinfo.value).startswith("Failed during geocoding:")


@pytest.mark.anyio
async def test_location_info_http_error(registry, upstream):
    upstream.geocoding = lambda request: httpx.Response(503, text="Service Unavailable")

    with pytest.raises(ToolExecutionError) as excinfo:
        await registry.invoke("find_location_info", {"query": "Eiffel Tower"})

    assert str(excinfo.value) == "Failed during geocoding: HTTP 503"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "hit",
    [
        "not an object",
        {"place_id": "not-a-number", "lat": "40.68", "lon": "-74.04"},
    ],
)
async def test_location_info_malformed_hit(registry, upstream, hit):
    upstream.geocoding = lambda request: httpx.Response(200, json=[hit])

    with pytest.raises(ToolExecutionError) as excinfo:
        await registry.invoke("find_location_info", {"query": "Statue of Liberty"})

    assert str(excinfo.value).startswith("Failed during geocoding: Unexpected geocoding response:")
