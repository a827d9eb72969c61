from contextlib import contextmanager
from flask import Blueprint, request, jsonify, session, current_app
from renshu.config import config
from renshu.services.ai_service import ai_service
from renshu.utils.audio import AudioDecodeError, decode_audio_data, decode_base64, encode_float32

api_bp = Blueprint('api', __name__)

def _sessions():
    return current_app.extensions["renshu.sessions"]

def _session_id():
    sid = session.get("sid")
    if not sid:
        sid = _sessions().new_session_id()
        session["sid"] = sid
    return sid

@contextmanager
def session_context():
    sessions = _sessions()
    sid = _session_id()
    with sessions.lock(sid):
        yield sessions, sessions.get_state(sid)

def _payload():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    return data

@api_bp.errorhandler(ValueError)
def bad_request(e):
    current_app.logger.warning(f'Bad request on {request.path}: {e}')
    return jsonify({"error": str(e)}), 400

@api_bp.route('/api/scenarios')
def scenarios():
    items = [{"index": i, "id": s.id, "title": s.title, "dialogues": len(s.dialogues)}
             for i, s in enumerate(_sessions().scenarios)]
    return jsonify({"items": items})

@api_bp.route('/api/state')
def state_view():
    with session_context() as (sessions, state):
        return jsonify(sessions.view(state))

@api_bp.route('/api/scenario', methods=['POST'])
def select_scenario():
    data = _payload()
    with session_context() as (sessions, state):
        sessions.select_scenario(state, data.get("index"))
        return jsonify(sessions.view(state))

@api_bp.route('/api/input', methods=['POST'])
def update_input():
    data = _payload()
    with session_context() as (sessions, state):
        if "inputs" in data:
            sessions.set_inputs(state, data["inputs"])
        else:
            sessions.set_input(state, data.get("index"), data.get("value", ""))
        return jsonify({"ok": True, "inputs": list(state.user_inputs)})

@api_bp.route('/api/check', methods=['POST'])
def check():
    data = _payload()
    with session_context() as (sessions, state):
        if "inputs" in data and not state.finished:
            sessions.set_inputs(state, data["inputs"])
        result = sessions.check_answers(state)
        result["state"] = sessions.view(state)
        return jsonify(result)

@api_bp.route('/api/feedback/clear', methods=['POST'])
def clear_feedback():
    with session_context() as (sessions, state):
        sessions.clear_feedback(state)
        return jsonify({"ok": True})

@api_bp.route('/api/hint', methods=['POST'])
def hint():
    with session_context() as (sessions, state):
        sessions.show_answer_hint(state)
        return jsonify({"inputs": list(state.user_inputs)})

@api_bp.route('/api/explain', methods=['POST'])
def explain():
    with session_context() as (sessions, state):
        token = sessions.begin_explanation(state)
        if token is None:
            return jsonify({"error": "busy"}), 409
        dialogue = sessions.current_dialogue(state)

    text = ai_service.get_grammar_analysis(dialogue.jp, dialogue.zh)

    with session_context() as (sessions, state):
        applied = sessions.finish_explanation(state, token, text)
    return jsonify({"explanation": text, "applied": applied})

@api_bp.route('/api/speech', methods=['POST'])
def speech():
    with session_context() as (sessions, state):
        token = sessions.begin_speech(state)
        if token is None:
            return jsonify({"error": "busy"}), 409
        dialogue = sessions.current_dialogue(state)

    buffer = None
    b64 = ai_service.generate_speech(dialogue.jp)
    if b64:
        try:
            raw = decode_base64(b64)
            buffer = decode_audio_data(raw, config.TTS_SAMPLE_RATE, config.TTS_CHANNELS)
        except AudioDecodeError as e:
            current_app.logger.error(f'Speech decode failed: {e}')

    with session_context() as (sessions, state):
        if buffer is None:
            sessions.finish_speech(state, token)
            return jsonify({"error": "playback_unavailable"}), 503
        if token != state.generation:
            return jsonify({"error": "stale"}), 409
        # the audio is handed over; playback happens in the browser
        sessions.finish_speech(state, token)

    return jsonify({
        "generation": token,
        "sample_rate": buffer.sample_rate,
        "num_channels": buffer.num_channels,
        "frame_count": buffer.frame_count,
        "pcm_f32": encode_float32(buffer),
    })
