"""Layout builders for the browser-side prompt page."""

from abc import ABC, abstractmethod
from typing import List

from dash import dcc, html
from dash.development.base_component import Component as DashComponent

# Component IDs the clientside callbacks rely on.
URL_LOCATION = "url_location"
PROMPT_INPUT = "prompt_input"
SEND_BUTTON = "send_button"
OUTPUT_AREA = "output_area"
STATUS_LINE = "status_line"

REQUIRED_IDS = (URL_LOCATION, PROMPT_INPUT, SEND_BUTTON, OUTPUT_AREA, STATUS_LINE)


class Layout(ABC):
    """Interface for building the Dash component layout."""

    @abstractmethod
    def build_layout(self) -> DashComponent:
        """Constructs and returns the entire Dash component tree for the UI."""
        pass

    def get_external_stylesheets(self) -> List:
        return []

    def get_external_scripts(self) -> List:
        return []


class Minimal(Layout):
    """A dependency-free layout built from plain Dash html components."""

    def build_layout(self) -> DashComponent:
        return html.Div(
            style={"maxWidth": "760px", "margin": "0 auto", "fontFamily": "sans-serif"},
            children=[
                dcc.Location(id=URL_LOCATION, refresh=False),
                html.H3("chatrelay"),
                html.Pre(
                    id=OUTPUT_AREA,
                    style={
                        "whiteSpace": "pre-wrap",
                        "minHeight": "300px",
                        "border": "1px solid #ddd",
                        "padding": "10px",
                    },
                ),
                dcc.Textarea(
                    id=PROMPT_INPUT,
                    placeholder="Type a prompt...",
                    style={"width": "100%", "height": "80px"},
                ),
                html.Button("Send", id=SEND_BUTTON, n_clicks=0),
                html.Div(id=STATUS_LINE, style={"color": "#888"}),
            ],
        )


class Bootstrap(Layout):
    """The default layout, styled with dash-bootstrap-components."""

    def __init__(self):
        import dash_bootstrap_components  # noqa: F401

    def get_external_stylesheets(self) -> List:
        import dash_bootstrap_components as dbc

        return [dbc.themes.BOOTSTRAP]

    def build_layout(self) -> DashComponent:
        return html.Div(
            className="d-flex flex-column vh-100",
            children=[
                dcc.Location(id=URL_LOCATION, refresh=False),
                self.build_header(),
                self.build_output_area(),
                self.build_input_area(),
            ],
        )

    def build_header(self) -> DashComponent:
        return html.Header(
            className="p-2 bg-light border-bottom",
            children=[html.H4("chatrelay", className="m-0")],
        )

    def build_output_area(self) -> DashComponent:
        return html.Main(
            className="flex-grow-1 p-3",
            style={"overflowY": "auto"},
            children=[html.Pre(id=OUTPUT_AREA, style={"whiteSpace": "pre-wrap"})],
        )

    def build_input_area(self) -> DashComponent:
        import dash_bootstrap_components as dbc

        return html.Footer(
            className="p-3 bg-light border-top",
            children=[
                dbc.InputGroup(
                    [
                        dbc.Textarea(id=PROMPT_INPUT, placeholder="Type a prompt..."),
                        dbc.Button("Send", id=SEND_BUTTON, color="primary", n_clicks=0),
                    ]
                ),
                html.Small(id=STATUS_LINE, className="text-muted"),
            ],
        )


def find_missing_ids(layout: DashComponent) -> List[str]:
    """Returns the required component IDs absent from `layout`."""
    found = {getattr(layout, "id", None)}
    found.update(getattr(component, "id", None) for component in layout._traverse())
    return [component_id for component_id in REQUIRED_IDS if component_id not in found]
