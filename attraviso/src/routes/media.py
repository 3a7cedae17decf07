"""
Media routes: image proxy for third-party attraction images
"""
from quart import Blueprint, current_app, jsonify, make_response, request

from attraviso.services.errors import ImageProxyError
from attraviso.src.components import get_components

bp = Blueprint('media', __name__)

CACHE_CONTROL = 'public, max-age=604800, immutable'
# proxied bytes share the API origin: no scripts, no sniffing
CONTENT_SECURITY_POLICY = "default-src 'none'; style-src 'unsafe-inline'; sandbox"


@bp.route('/api/image-proxy', methods=['GET'])
async def image_proxy():
    """Fetch `url` server-side; `w` resizes to that width, `q` sets WebP quality."""
    url = (request.args.get('url') or '').strip()
    comps = get_components()
    try:
        image = await comps.proxy.fetch(url, width=request.args.get('w'), quality=request.args.get('q'))
    except ImageProxyError as e:
        current_app.logger.info(f"[IMAGE-PROXY] {e.code} for {url!r}: {e}")
        return jsonify({'error': e.code, 'details': str(e)}), e.status_code
    except Exception as e:
        current_app.logger.exception(f'Image proxy failed for {url!r}: {e}')
        return jsonify({'error': 'upstream_fetch_failed', 'details': 'Unexpected proxy failure'}), 502

    response = await make_response(image.body)
    response.headers['Content-Type'] = image.content_type
    response.headers['Cache-Control'] = CACHE_CONTROL
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Content-Security-Policy'] = CONTENT_SECURITY_POLICY
    return response


def register(app):
    """Register media blueprint with app"""
    app.register_blueprint(bp)
