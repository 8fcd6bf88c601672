"""Tests for leadengine.automations.templates — {{variable}} rendering."""
from leadengine.automations.base import LeadSnapshot
from leadengine.automations.templates import render_template, build_template_variables


class TestRenderTemplate:

    def test_substitutes_variables(self):
        out = render_template('Hi {{name}}, {{agentName}} here.', {'name': 'Jamie', 'agentName': 'Primus'})
        assert out == 'Hi Jamie, Primus here.'

    def test_missing_variable_renders_empty(self):
        assert render_template('Hi {{name}}!{{unknown}}', {'name': 'Jamie'}) == 'Hi Jamie!'

    def test_none_value_renders_empty(self):
        assert render_template('[{{solarSummary}}]', {'solarSummary': None}) == '[]'

    def test_repeated_placeholder(self):
        assert render_template('{{a}}-{{a}}', {'a': 'x'}) == 'x-x'

    def test_malformed_placeholders_left_alone(self):
        text = 'Hi {{ name }} and {name} and {{name'
        assert render_template(text, {'name': 'Jamie'}) == text

    def test_empty_template(self):
        assert render_template('', {'name': 'Jamie'}) == ''
        assert render_template(None, {'name': 'Jamie'}) == ''

    def test_no_variables(self):
        assert render_template('Hi {{name}}', None) == 'Hi '


class TestBuildTemplateVariables:

    def _lead(self, **overrides):
        defaults = dict(id='lead-1', tenant_id='tenant-1')
        defaults.update(overrides)
        return LeadSnapshot(**defaults)

    def test_defaults_for_bare_lead(self):
        variables = build_template_variables(self._lead(), 'Primus Team')
        assert variables == {
            'name': 'there',
            'businessType': 'services',
            'agentName': 'Primus Team',
            'solarSuitability': 'pending',
            'maxPanels': '0',
            'systemSize': 'N/A',
            'solarSummary': '',
            'annualProduction': 'N/A',
        }

    def test_enriched_viable_lead(self):
        lead = self._lead(
            name='Jamie', source='Roofing', solar_enriched=True, site_suitability='VIABLE',
            max_panels_count=42, annual_kwh_production=21345.6,
        )
        variables = build_template_variables(lead, 'Primus Team')
        assert variables['name'] == 'Jamie'
        assert variables['businessType'] == 'Roofing'
        assert variables['solarSuitability'] == 'VIABLE'
        assert variables['maxPanels'] == '42'
        assert variables['systemSize'] == '16.8kW'
        assert variables['solarSummary'] == (
            'Excellent solar potential! Up to 42 panels (16.8kW system) recommended.'
        )
        assert variables['annualProduction'] == '21,346 kWh'

    def test_summary_empty_until_enriched(self):
        lead = self._lead(solar_enriched=False, site_suitability='NOT_VIABLE', max_panels_count=3)
        assert build_template_variables(lead, 'A')['solarSummary'] == ''

    def test_challenging_summary(self):
        lead = self._lead(solar_enriched=True, site_suitability='CHALLENGING', max_panels_count=6)
        assert build_template_variables(lead, 'A')['solarSummary'] == (
            'Moderate solar potential. 6 panels possible, may require optimization.'
        )

    def test_renders_full_message(self):
        lead = self._lead(name='Jamie', solar_enriched=True, site_suitability='VIABLE', max_panels_count=25)
        out = render_template(
            'Hi {{name}}! Your roof fits {{maxPanels}} panels ({{systemSize}}). {{agentName}}',
            build_template_variables(lead, 'Primus Team'),
        )
        assert out == 'Hi Jamie! Your roof fits 25 panels (10.0kW). Primus Team'
