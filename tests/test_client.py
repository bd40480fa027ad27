from mcp import types

from openweather_mcp.client import format_tool_result


def test_format_tool_result_pretty_prints_json():
    result = types.CallToolResult(
        content=[types.TextContent(type="text", text='{"units": "metric", "temperature": 18.4}')],
        isError=False,
    )

    assert format_tool_result(result) == '{\n  "units": "metric",\n  "temperature": 18.4\n}'


def test_format_tool_result_marks_errors():
    result = types.CallToolResult(
        content=[types.TextContent(type="text", text="Failed during geocoding: No results found for 'Nowhere'")],
        isError=True,
    )

    assert format_tool_result(result) == "ERROR: Failed during geocoding: No results found for 'Nowhere'"
