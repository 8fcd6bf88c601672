"""
Google Solar API client — site suitability enrichment for leads.

Geocodes a street address, fetches building insights (HIGH imagery, falling
back once to MEDIUM), classifies the site and derives sizing + financial
metrics. The service only returns data; the automation dispatcher persists it.

Docs: https://developers.google.com/maps/documentation/solar
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import requests

from leadengine.config import (
    GOOGLE_SOLAR_API_KEY, GOOGLE_GEOCODING_API_KEY,
    GEOCODING_API_URL, SOLAR_API_URL, ENRICHMENT_TIMEOUT_SECONDS,
    VIABLE, CHALLENGING, NOT_VIABLE,
    VIABLE_MIN_PANELS, VIABLE_MIN_SUNSHINE_HOURS,
    CHALLENGING_MIN_PANELS, CHALLENGING_MIN_SUNSHINE_HOURS,
    DEFAULT_PANEL_CAPACITY_W, QUALITY_HIGH, QUALITY_MEDIUM,
)
from leadengine.services.circuit_breaker import CircuitOpenError

logger = logging.getLogger('services.solar')

MIN_ADDRESS_LENGTH = 5
API_VERSION = 'v1'


# ── Errors ────────────────────────────────────────────────────────────────────

class EnrichmentError(Exception):
    """Base class for enrichment failures. Never fatal to an automation."""
    kind = 'enrichment_failed'


class InvalidAddressError(EnrichmentError):
    kind = 'invalid_input'


class GeocodeFailedError(EnrichmentError):
    kind = 'geocode_failed'


class ProviderUnavailableError(EnrichmentError):
    kind = 'provider_unavailable'


# ── Results ───────────────────────────────────────────────────────────────────

@dataclass
class SiteSurveyData:
    """Detailed snapshot of one enrichment call, persisted as a SiteSurvey row."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    imagery_date: Optional[date] = None
    imagery_quality: Optional[str] = None
    roof_segment_count: int = 0
    total_roof_area_sqm: Optional[float] = None
    usable_roof_area_sqm: Optional[float] = None
    azimuth_degrees: Optional[float] = None
    system_size_kw: float = 0.0
    panel_capacity_w: int = DEFAULT_PANEL_CAPACITY_W
    recommended_panels: int = 0
    estimated_cost_usd: Optional[float] = None
    estimated_savings_year: Optional[float] = None
    payback_years: Optional[float] = None
    building_insights_json: Optional[Dict[str, Any]] = None
    module_layout_json: Optional[List[Dict[str, Any]]] = None
    financial_analysis_json: Optional[Dict[str, Any]] = None
    api_version: str = API_VERSION


@dataclass
class EnrichmentResult:
    site_suitability: str
    max_panels_count: int
    max_sunshine_hours_year: float
    annual_kwh_production: float
    system_size_kw: float
    roof_pitch: Optional[float] = None
    carbon_offset_kg: Optional[float] = None
    estimated_savings_year: Optional[float] = None
    payback_years: Optional[float] = None
    imagery_quality: Optional[str] = None
    survey: SiteSurveyData = field(default_factory=SiteSurveyData)

    def lead_fields(self) -> Dict[str, Any]:
        """Lead columns to write back (solar_enriched/_at are set by the store)."""
        return {
            'site_suitability': self.site_suitability,
            'max_panels_count': self.max_panels_count,
            'max_sunshine_hours_year': self.max_sunshine_hours_year,
            'annual_kwh_production': self.annual_kwh_production,
            'roof_pitch': self.roof_pitch,
            'carbon_offset_kg': self.carbon_offset_kg,
        }

    def payload(self) -> Dict[str, Any]:
        """Metrics handed to the solar.analyzed dispatch."""
        return {
            'siteSuitability': self.site_suitability,
            'maxPanelsCount': self.max_panels_count,
            'systemSizeKW': self.system_size_kw,
        }


# ── Pure helpers ──────────────────────────────────────────────────────────────

def calculate_site_suitability(insights: Dict[str, Any]) -> str:
    """VIABLE is checked before CHALLENGING; first match wins."""
    potential = (insights or {}).get('solarPotential') or {}
    max_panels = potential.get('maxArrayPanelsCount') or 0
    sunshine_hours = potential.get('maxSunshineHoursPerYear') or 0

    if max_panels >= VIABLE_MIN_PANELS and sunshine_hours >= VIABLE_MIN_SUNSHINE_HOURS:
        return VIABLE
    if max_panels >= CHALLENGING_MIN_PANELS and sunshine_hours >= CHALLENGING_MIN_SUNSHINE_HOURS:
        return CHALLENGING
    return NOT_VIABLE


def get_best_panel_config(insights: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    The configuration with the most panels (last in the provider's list).

    Max capacity, not a cost-optimised pick.
    """
    configs = ((insights or {}).get('solarPotential') or {}).get('solarPanelConfigs') or []
    return configs[-1] if configs else None


def calculate_system_size_kw(panel_count, panel_capacity_w=DEFAULT_PANEL_CAPACITY_W) -> float:
    return ((panel_count or 0) * panel_capacity_w) / 1000


def get_solar_potential_summary(site_suitability, max_panels, system_size_kw) -> str:
    """Human-readable summary for message templates."""
    if site_suitability == VIABLE:
        return (f"Excellent solar potential! Up to {max_panels} panels "
                f"({system_size_kw:.1f}kW system) recommended.")
    if site_suitability == CHALLENGING:
        return f"Moderate solar potential. {max_panels} panels possible, may require optimization."
    if site_suitability == NOT_VIABLE:
        return "Limited solar potential at this location. Consider alternative options."
    return "Solar analysis pending."


def _money(amount: Optional[Dict[str, Any]]) -> Optional[float]:
    """{'currencyCode': 'USD', 'units': '1234'} → 1234.0"""
    if not isinstance(amount, dict) or amount.get('units') in (None, ''):
        return None
    try:
        return float(amount['units'])
    except (TypeError, ValueError):
        return None


def _imagery_date(raw: Optional[Dict[str, Any]]) -> Optional[date]:
    if not isinstance(raw, dict):
        return None
    try:
        return date(int(raw['year']), int(raw['month']), int(raw['day']))
    except (KeyError, TypeError, ValueError):
        return None


def build_enrichment_result(insights: Dict[str, Any]) -> EnrichmentResult:
    """Derive suitability, sizing and financial metrics from a buildingInsights payload."""
    potential = insights.get('solarPotential') or {}
    site_suitability = calculate_site_suitability(insights)
    best_config = get_best_panel_config(insights) or {}

    max_panels = potential.get('maxArrayPanelsCount') or 0
    sunshine_hours = potential.get('maxSunshineHoursPerYear') or 0
    annual_kwh = best_config.get('yearlyEnergyDcKwh') or 0
    recommended_panels = best_config.get('panelsCount') or max_panels
    system_size_kw = calculate_system_size_kw(recommended_panels)

    segments = potential.get('roofSegmentStats') or []
    primary_segment = segments[0] if segments else {}

    analyses = potential.get('financialAnalyses') or []
    financial = analyses[0] if analyses else None
    cash = (financial or {}).get('cashPurchaseSavings') or {}
    savings_year1 = _money((cash.get('savings') or {}).get('savingsYear1'))
    payback_years = cash.get('paybackYears')
    out_of_pocket = _money(cash.get('outOfPocketCost'))

    carbon_factor = potential.get('carbonOffsetFactorKgPerMwh') or 0
    center = insights.get('center') or {}

    survey = SiteSurveyData(
        latitude=center.get('latitude'),
        longitude=center.get('longitude'),
        imagery_date=_imagery_date(insights.get('imageryDate')),
        imagery_quality=insights.get('imageryQuality'),
        roof_segment_count=len(segments),
        total_roof_area_sqm=(potential.get('wholeRoofStats') or {}).get('areaMeters2'),
        usable_roof_area_sqm=potential.get('maxArrayAreaMeters2'),
        azimuth_degrees=primary_segment.get('azimuthDegrees'),
        system_size_kw=system_size_kw,
        recommended_panels=recommended_panels,
        estimated_cost_usd=out_of_pocket,
        estimated_savings_year=savings_year1,
        payback_years=payback_years,
        building_insights_json=insights,
        module_layout_json=best_config.get('roofSegmentSummaries'),
        financial_analysis_json=financial,
    )

    return EnrichmentResult(
        site_suitability=site_suitability,
        max_panels_count=max_panels,
        max_sunshine_hours_year=sunshine_hours,
        annual_kwh_production=annual_kwh,
        system_size_kw=system_size_kw,
        roof_pitch=primary_segment.get('pitchDegrees'),
        carbon_offset_kg=(annual_kwh * carbon_factor) / 1000,
        estimated_savings_year=savings_year1,
        payback_years=payback_years,
        imagery_quality=insights.get('imageryQuality'),
        survey=survey,
    )


# ── Client ────────────────────────────────────────────────────────────────────

class SolarEnrichmentService:
    """
    Address → EnrichmentResult.

    Usage:
        service = SolarEnrichmentService()
        if service.is_configured():
            result = service.enrich('1600 Amphitheatre Pkwy, Mountain View, CA')

    Raises an EnrichmentError subclass on failure. Every HTTP call carries a
    timeout; timeouts and connection errors count as ProviderUnavailableError.
    """

    def __init__(self, api_key=None, geocoding_api_key=None, session=None,
                 timeout=ENRICHMENT_TIMEOUT_SECONDS, geocode_breaker=None, solar_breaker=None):
        self.api_key = api_key if api_key is not None else GOOGLE_SOLAR_API_KEY
        self.geocoding_api_key = geocoding_api_key or GOOGLE_GEOCODING_API_KEY or self.api_key
        self.http = session or requests.Session()
        self.timeout = timeout
        self.geocode_breaker = geocode_breaker
        self.solar_breaker = solar_breaker

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def enrich(self, address: str) -> EnrichmentResult:
        if not self.is_configured():
            raise ProviderUnavailableError("GOOGLE_SOLAR_API_KEY not configured")
        if not address or len(address.strip()) < MIN_ADDRESS_LENGTH:
            raise InvalidAddressError("Invalid address provided")

        lat, lng = self.geocode(address.strip())
        insights = self.fetch_building_insights(lat, lng)
        result = build_enrichment_result(insights)

        logger.info(
            "Solar insights for %s: %s, %d panels, %.0f sunshine h/yr (%s imagery)",
            address, result.site_suitability, result.max_panels_count,
            result.max_sunshine_hours_year, result.imagery_quality or 'unknown',
        )
        return result

    def geocode(self, address: str) -> Tuple[float, float]:
        params = {'address': address, 'key': self.geocoding_api_key}
        response = self._get(self.geocode_breaker, GEOCODING_API_URL, params)

        if response.status_code != 200:
            raise GeocodeFailedError(f"Geocoding HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError as e:
            raise GeocodeFailedError("Geocoding returned invalid JSON") from e

        status = data.get('status')
        results = data.get('results') or []
        location = ((results[0] if results else {}).get('geometry') or {}).get('location') or {}
        if status != 'OK' or location.get('lat') is None or location.get('lng') is None:
            logger.warning("Geocoding failed for %r: %s", address, status)
            raise GeocodeFailedError(f"Geocoding failed: {status}")

        return location['lat'], location['lng']

    def fetch_building_insights(self, lat: float, lng: float) -> Dict[str, Any]:
        """findClosest at HIGH quality; exactly one retry at MEDIUM on 404."""
        response = self._request_insights(lat, lng, QUALITY_HIGH)

        if response.status_code == 404:
            logger.info("No HIGH quality imagery at (%s, %s), retrying with MEDIUM", lat, lng)
            response = self._request_insights(lat, lng, QUALITY_MEDIUM)

        if response.status_code != 200:
            logger.error("Solar API request failed: %d %s", response.status_code, response.text[:200])
            raise ProviderUnavailableError(f"Solar API HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise ProviderUnavailableError("Solar API returned invalid JSON") from e

    def _request_insights(self, lat, lng, quality):
        params = {
            'location.latitude': lat,
            'location.longitude': lng,
            'requiredQuality': quality,
            'key': self.api_key,
        }
        return self._get(self.solar_breaker, f"{SOLAR_API_URL}/buildingInsights:findClosest", params)

    def _get(self, breaker, url, params):
        """GET through the breaker (if any); transport problems → ProviderUnavailableError."""
        try:
            if breaker is not None:
                return breaker.call(self.http.get, url, params=params, timeout=self.timeout)
            return self.http.get(url, params=params, timeout=self.timeout)
        except CircuitOpenError as e:
            raise ProviderUnavailableError(str(e)) from e
        except requests.exceptions.Timeout as e:
            raise ProviderUnavailableError(f"Request timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise ProviderUnavailableError(f"Request failed: {e}") from e
