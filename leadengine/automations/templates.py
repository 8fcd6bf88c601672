"""
Message template rendering ({{variable}} substitution).
"""
import re
from typing import Dict, Mapping, Optional

from leadengine.automations.base import LeadSnapshot
from leadengine.config import DEFAULT_PANEL_CAPACITY_W
from leadengine.services.solar import calculate_system_size_kw, get_solar_potential_summary

_PLACEHOLDER = re.compile(r'\{\{(\w+)\}\}')


def render_template(template: Optional[str], variables: Optional[Mapping[str, object]]) -> str:
    """
    Replace every {{identifier}} with its variable.

    Missing, None or empty variables render as ''. Never raises: anything
    that is not a well-formed placeholder is left as written.
    """
    if not template:
        return ''
    variables = variables or {}

    def _sub(match):
        value = variables.get(match.group(1))
        if value is None:
            return ''
        return str(value)

    return _PLACEHOLDER.sub(_sub, str(template))


def build_template_variables(lead: LeadSnapshot, agent_name: str) -> Dict[str, str]:
    """Variables available to every workflow template."""
    panels = lead.max_panels_count or 0
    system_size_kw = calculate_system_size_kw(panels, DEFAULT_PANEL_CAPACITY_W)

    solar_summary = ''
    if lead.solar_enriched and lead.site_suitability and panels:
        solar_summary = get_solar_potential_summary(lead.site_suitability, panels, system_size_kw)

    if lead.annual_kwh_production:
        annual_production = f"{round(lead.annual_kwh_production):,} kWh"
    else:
        annual_production = 'N/A'

    return {
        'name': lead.name or 'there',
        'businessType': lead.source or 'services',
        'agentName': agent_name,
        'solarSuitability': lead.site_suitability or 'pending',
        'maxPanels': str(panels),
        'systemSize': f"{system_size_kw:.1f}kW" if panels else 'N/A',
        'solarSummary': solar_summary,
        'annualProduction': annual_production,
    }
