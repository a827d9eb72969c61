from flask import Blueprint, render_template, jsonify, current_app
from renshu.config import config
from renshu.routes.api import session_context
from renshu.utils.helpers import input_width_rem

main_bp = Blueprint('main', __name__)

@main_bp.route('/')
def index():
    with session_context() as (sessions, state):
        view = sessions.view(state)
        segments = sessions.segmentation(state).segments
    widths = [input_width_rem(s) for s in segments]
    return render_template(
        'practice.html',
        scenarios=sessions.scenarios,
        view=view,
        widths=widths,
        advance_delay_ms=config.ADVANCE_DELAY_MS,
        error_clear_ms=config.ERROR_CLEAR_MS,
    )

@main_bp.route('/api/status')
def status():
    return jsonify({
        "ai_configured": bool(config.API_KEY),
        "text_model": config.TEXT_MODEL_ID,
        "tts_model": config.TTS_MODEL_ID,
        "tts_voice": config.TTS_VOICE,
        "sample_rate": config.TTS_SAMPLE_RATE,
        "scenarios": len(current_app.extensions["renshu.sessions"].scenarios),
    })
