"""
Admin routes: liveness
"""
from quart import Blueprint, jsonify

bp = Blueprint('admin', __name__)


@bp.route('/api/health')
async def health():
    return jsonify({'ok': True})


def register(app):
    """Register admin blueprint with app"""
    app.register_blueprint(bp)
