"""
Attraction routes: nearby points of interest with best-effort images
"""
import math
from typing import Optional

from quart import Blueprint, current_app, jsonify, request

from attraviso.providers.overpass_provider import OverpassError, discover_attractions
from attraviso.src.components import get_components
from attraviso.src.enrichment import enrich_within

bp = Blueprint('attractions', __name__)

_FALSEY = ('0', 'false', 'no', 'off')


def _parse_coordinate(raw: str, limit: float) -> Optional[float]:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or abs(value) > limit:
        return None
    return value


@bp.route('/api/attractions', methods=['GET'])
async def attractions():
    """Attractions around lat/lon.

    Query params: lat, lon (required), radius (meters), enrich=0 to skip
    image lookups, sort=distance to order nearest first.
    """
    args = request.args
    lat_raw = (args.get('lat') or '').strip()
    lon_raw = (args.get('lon') or '').strip()
    if not lat_raw or not lon_raw:
        return jsonify({'error': 'Missing required query params: lat, lon'}), 400

    lat = _parse_coordinate(lat_raw, 90)
    lon = _parse_coordinate(lon_raw, 180)
    if lat is None or lon is None:
        return jsonify({'error': 'Invalid coordinates: lat must be within [-90, 90] and lon within [-180, 180]'}), 400

    comps = get_components()
    config = comps.config

    try:
        items = await discover_attractions(
            comps.overpass,
            lat,
            lon,
            args.get('radius'),
            max_results=config.overpass_config.max_results,
        )
    except OverpassError as e:
        current_app.logger.warning(f"[ATTRACTIONS] Overpass lookup failed for {lat},{lon}: {e}")
        status = e.status if e.status and e.status >= 500 else 502
        body = {'error': 'Failed to fetch attractions', 'details': str(e)}
        if e.status:
            body['upstreamStatus'] = e.status
        return jsonify(body), status

    if items and args.get('enrich', '1').strip().lower() not in _FALSEY:
        await enrich_within(
            items,
            comps.resolver,
            deadline=config.timeout_config.enrichment_total,
            concurrency=config.enrichment_config.concurrency,
            max_items=config.enrichment_config.max_items,
            background=comps.background,
        )

    if args.get('sort') == 'distance':
        items = sorted(items, key=lambda r: r.distance_m if r.distance_m is not None else math.inf)

    return jsonify({'count': len(items), 'items': [r.to_dict() for r in items]})


def register(app):
    """Register attractions blueprint with app"""
    app.register_blueprint(bp)
