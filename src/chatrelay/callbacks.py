"""HTTP routes and clientside callbacks wiring the browser to the session."""

import logging

from dash import Input, Output, State
from flask import Response, jsonify, request, stream_with_context

from .errors import BadInput, DecodeError, RelayError, UpstreamError, UpstreamStatusError
from .layout import OUTPUT_AREA, PROMPT_INPUT, SEND_BUTTON, STATUS_LINE, URL_LOCATION

logger = logging.getLogger(__name__)

PROMPT_ROUTE = "/api/prompt"
STREAM_ROUTE = "/stream"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET",
    "Access-Control-Allow-Headers": "Content-Type",
}


def error_response(exc: RelayError):
    """Maps a core error onto the JSON error response sent to the submitter."""
    if isinstance(exc, BadInput):
        status = 400
    elif isinstance(exc, (UpstreamError, DecodeError)):
        status = 502
    else:
        status = 500
    body = {"error": exc.kind, "detail": str(exc)}
    if isinstance(exc, UpstreamStatusError):
        body["upstream_status"] = exc.status_code
    return jsonify(body), status


def register_routes(app):
    server = app.server

    @server.post(PROMPT_ROUTE)
    def submit_prompt():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict) or not isinstance(payload.get("prompt"), str):
            logger.info("Rejected prompt request without a JSON prompt field")
            return (
                jsonify(
                    {
                        "error": BadInput.kind,
                        "detail": 'Expected a JSON body like {"prompt": "..."}',
                    }
                ),
                400,
            )

        try:
            result = app.session.submit_prompt(payload["prompt"])
        except RelayError as exc:
            return error_response(exc)

        return jsonify({"status": "completed", **result.model_dump()})

    @server.get(STREAM_ROUTE)
    def stream():
        frames = app.session.attach_listener()
        return Response(
            stream_with_context(frames),
            mimetype="text/event-stream",
            headers=STREAM_HEADERS,
        )


def register_callbacks(app):
    register_routes(app)
    _register_clientside_callbacks(app)


def _register_clientside_callbacks(app):
    # Open the event stream once per page and append fragments as they arrive
    app.clientside_callback(
        f"""
        function(pathname) {{
            if (!window.chatrelaySource) {{
                const output = document.getElementById('{OUTPUT_AREA}');
                const source = new EventSource('{STREAM_ROUTE}');
                source.addEventListener('message', function(e) {{
                    if (output) {{
                        output.textContent += e.data;
                        output.scrollTop = output.scrollHeight;
                    }}
                }});
                source.addEventListener('end', function(e) {{
                    if (output) {{
                        output.textContent += '\\n\\n';
                    }}
                }});
                window.chatrelaySource = source;
            }}
            return window.dash_clientside.no_update;
        }}
        """,
        Output(OUTPUT_AREA, "data-stream", allow_duplicate=True),
        Input(URL_LOCATION, "pathname"),
        prevent_initial_call="initial_duplicate",
    )

    # Submit the prompt; the reply itself arrives through the event stream
    app.clientside_callback(
        f"""
        function(n_clicks, prompt) {{
            if (!n_clicks || !prompt || !prompt.trim()) {{
                return [window.dash_clientside.no_update, window.dash_clientside.no_update];
            }}
            const status = document.getElementById('{STATUS_LINE}');
            fetch('{PROMPT_ROUTE}', {{
                method: 'POST',
                headers: {{'Content-Type': 'application/json'}},
                body: JSON.stringify({{prompt: prompt}})
            }})
                .then(function(response) {{ return response.json(); }})
                .then(function(body) {{
                    if (status) {{
                        status.textContent = body.error ? ('Error: ' + body.detail) : '';
                    }}
                }})
                .catch(function(err) {{
                    if (status) {{
                        status.textContent = 'Error: ' + err;
                    }}
                }});
            return ['', 'Waiting for reply...'];
        }}
        """,
        [Output(PROMPT_INPUT, "value"), Output(STATUS_LINE, "children")],
        Input(SEND_BUTTON, "n_clicks"),
        State(PROMPT_INPUT, "value"),
        prevent_initial_call=True,
    )
