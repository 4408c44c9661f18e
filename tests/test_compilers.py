"""Tests for the design -> spec and design -> markup compilers."""

from miniapp.models.design import DesignComponentType, ShadowProperties
from miniapp.models.spec import ActionType, Capability, ComponentType, PageLayout
from miniapp.services.compiler.dsl_adapter import design_to_spec, infer_capabilities, parse_version
from miniapp.services.compiler.fonts import css_font_weight, normalize_font_weight
from miniapp.services.compiler.markup import js_identifier, markup_compiler, render_document
from miniapp.services.runtime import MiniAppRuntime
from miniapp.services.validator import spec_validator

from tests.conftest import make_component


class TestFonts:
    def test_named_weights(self):
        assert normalize_font_weight("semibold") == 600
        assert normalize_font_weight("Bold") == 700
        assert normalize_font_weight("chunky") == 400

    def test_numeric_strings(self):
        assert normalize_font_weight("550") == 550
        assert css_font_weight("300") == 300


class TestDesignToSpec:
    def test_single_scroll_page(self, simple_design):
        spec = design_to_spec.convert(simple_design)
        assert spec.id == simple_design.id
        assert len(spec.pages) == 1
        page = spec.pages[0]
        assert page.id == "page-design-1"
        assert page.title == "Simple"
        assert page.layout is PageLayout.SCROLL
        assert [c.id for c in page.components] == ["title", "items", "cta"]

    def test_type_mapping(self, simple_design):
        page = design_to_spec.convert(simple_design).pages[0]
        assert [c.type for c in page.components] == [
            ComponentType.LABEL, ComponentType.LIST, ComponentType.BUTTON,
        ]

    def test_buttons_get_alert_actions(self, simple_design):
        spec = design_to_spec.convert(simple_design)
        button = spec.pages[0].components[2]
        assert button.action_ids == ("action-cta",)
        action = spec.action("action-cta")
        assert action.type is ActionType.SHOW_ALERT
        assert action.param("title").as_string() == "Start"
        assert action.param("message").as_string() == "startSession"

    def test_compiled_spec_is_valid_and_runs(self, simple_design):
        spec = design_to_spec.convert(simple_design)
        assert spec_validator.validate(spec).is_valid
        runtime = MiniAppRuntime(spec)
        runtime.dispatch(["action-cta"])
        assert runtime.active_alert.title == "Start"

    def test_card_and_divider_mapping(self, simple_design):
        simple_design.root_component.children += [
            make_component(DesignComponentType.CARD, "card", text="Card"),
            make_component(DesignComponentType.DIVIDER, "line"),
        ]
        page = design_to_spec.convert(simple_design).pages[0]
        assert page.components[3].type is ComponentType.CONTAINER
        assert page.components[4].type is ComponentType.SPACER

    def test_style_conversion(self, simple_design):
        title = simple_design.root_component.children[0]
        title.style.font_weight = "bold"
        title.style.border_radius = 9
        style = design_to_spec.convert(simple_design).pages[0].components[0].props.style
        assert style.font_weight == 700
        assert style.corner_radius == 9

    def test_version_and_capabilities(self):
        assert parse_version("2.4.1") == 2
        assert parse_version("beta") == 1
        assert infer_capabilities("A focus timer with notifications") == (
            Capability.TIMER, Capability.LOCAL_NOTIFICATIONS,
        )


class TestMarkup:
    def test_html_elements(self, simple_design):
        html = markup_compiler.generate_html(simple_design)
        assert html.startswith('<div id="app-root">')
        assert '<p id="component-title" class="component-text">Welcome</p>' in html
        assert "<li>One</li>" in html
        assert "startSession(&quot;cta&quot;)" in html

    def test_text_is_escaped(self, simple_design):
        simple_design.root_component.children[0].data.text = "<script>alert(1)</script>"
        html = markup_compiler.generate_html(simple_design)
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_quote_in_id_stays_inside_the_handler_argument(self, simple_design):
        simple_design.root_component.children[2].id = "cta');alert(1);('"
        html = markup_compiler.generate_html(simple_design)
        assert "startSession(&quot;cta&#x27;);alert(1);(&#x27;&quot;)" in html

    def test_style_values_cannot_close_the_style_block(self, simple_design):
        button = simple_design.root_component.children[2]
        button.style.background_color = "red;}</style><script>alert(1)</script>"
        button.style.font_family = "x}</style><script>alert(1)</script>"
        button.style.shadow = ShadowProperties(color="</style>")
        button.id = "cta</style>"
        app = markup_compiler.generate_app(simple_design)
        assert "</style>" not in app.css
        assert "<script>" not in app.css
        assert "background-color: #FFFFFF;" in app.css
        assert "box-shadow: 0px 2px 4px #000000;" in app.css
        assert "font-family" not in app.css
        assert "#component-cta\\3c \\2f style\\3e  {" in app.css
        assert render_document(app).count("</style>") == 1

    def test_css_uses_safe_fallbacks(self, broken_design):
        css = markup_compiler.generate_css(broken_design)
        assert "#component-title {" in css
        assert "width: 320px;" in css

    def test_javascript_handlers(self, simple_design):
        js = markup_compiler.generate_javascript(simple_design)
        assert "function startSession(componentId)" in js
        assert "function handleClick(componentId)" in js
        assert "function handleInput(elementId, value)" in js

    def test_js_identifier(self):
        assert js_identifier("open settings") == "open_settings"
        assert js_identifier("1st") == "_1st"

    def test_document(self, simple_design):
        app = markup_compiler.generate_app(simple_design)
        assert app.metadata["componentCount"] == 4
        document = render_document(app)
        assert document.startswith("<!DOCTYPE html>")
        assert "<title>Simple</title>" in document
        assert app.html in document
