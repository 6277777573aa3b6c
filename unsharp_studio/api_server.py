#!/usr/bin/env python3
"""
Unsharp Studio API Server
One editing session per client: load an image, apply destructive filters
step by step, preview the stroke overlay, reset.
"""

import os
import logging
import uuid
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify
from flask_cors import CORS

from .models.color import Color
from .models.errors import PipelineNotLoaded, UnsharpStudioError
from .models.filter_settings import FilterSettings
from .pipeline.filter_pipeline import FilterPipeline
from .pipeline.filter_tasks import FilterTaskRunner
from .services.image_service import ImageService
from .services.sharpen_service import SharpenService

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
ALLOWED_EXTENSIONS = set(os.getenv("ALLOWED_EXTENSIONS", "png,jpg,jpeg,bmp,webp").split(","))
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "50")) * 1024 * 1024

app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

# Initialize services
image_service = ImageService()

logger = logging.getLogger(__name__)

# Session storage for pipeline state
sessions: Dict[str, "EditSession"] = {}


class EditSession:
    """Manages the filter pipeline of a single user's editing session."""

    def __init__(self, session_id: str, settings: FilterSettings):
        self.session_id = session_id
        self.settings = settings
        self.pipeline = FilterPipeline(sharpen_service=SharpenService(workers=settings.workers))
        self.tasks = FilterTaskRunner(self.pipeline)

    def run(self, method: str, *args, **kwargs):
        """Run a pipeline step on the session's worker and wait for it."""
        return self.tasks.submit(method, *args, **kwargs).result()

    def close(self):
        """Stop the worker and free the images."""
        self.tasks.shutdown(wait=True, cancel_pending=True)


def get_or_create_session(session_id: str = None) -> EditSession:
    """Get existing session or create new one."""
    if not session_id:
        session_id = str(uuid.uuid4())

    if session_id not in sessions:
        sessions[session_id] = EditSession(session_id, FilterSettings.from_env())

    return sessions[session_id]


def get_session(payload: Dict[str, Any]) -> Optional[EditSession]:
    session_id = payload.get('session_id')
    if not session_id or session_id not in sessions:
        return None
    return sessions[session_id]


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def session_state(session: EditSession, **extra) -> Dict[str, Any]:
    """Common JSON body: display image rendered with the session's stroke settings."""
    settings = session.settings
    display = session.run("render", settings.stroke_size, Color.parse(settings.stroke_color))
    body = {
        'success': True,
        'session_id': session.session_id,
        'width': display.width,
        'height': display.height,
        'history': list(session.pipeline.history),
        'image': image_service.to_data_url(display),
    }
    body.update(extra)
    return body


def settings_from_payload(session: EditSession, payload: Dict[str, Any]) -> FilterSettings:
    """Merge request overrides into the session settings (validated)."""
    overrides = {
        'amount': payload.get('amount'),
        'sigma': payload.get('sigma'),
        'threshold': payload.get('threshold'),
        'unsharp_iterations': payload.get('iterations'),
        'contrast_amount': payload.get('contrast_amount'),
        'stroke_size': payload.get('stroke_size'),
        'stroke_color': payload.get('stroke_color'),
    }
    return session.settings.with_overrides(**overrides).validate()


def run_step(step: str):
    """Shared handler for the JSON filter endpoints."""
    payload = request.get_json(silent=True) or {}
    session = get_session(payload)
    if session is None:
        return jsonify({'success': False, 'message': 'Invalid session'}), 400

    try:
        settings = settings_from_payload(session, payload)
        if step == "unsharp":
            session.run("apply_unsharp", settings)
        elif step == "grayscale":
            session.run("apply_grayscale")
        elif step == "threshold":
            session.run("apply_threshold")
        elif step == "contrast":
            session.run("apply_contrast", settings.contrast_amount)
        elif step == "reset":
            session.run("reset")
        # render only changes the stroke settings kept on the session
        session.settings = settings
        logger.info(f"Session {session.session_id}: {step} done")
        return jsonify(session_state(session, message=f'{step} applied'))

    except PipelineNotLoaded as e:
        return jsonify({'success': False, 'message': str(e)}), 400
    except (UnsharpStudioError, ValueError, TypeError) as e:
        logger.warning(f"Session {session.session_id}: rejected {step}: {e}")
        return jsonify({'success': False, 'message': str(e)}), 400


@app.route('/api/load-image', methods=['POST'])
def load_image():
    """Load an image into a (new or existing) session."""
    try:
        if 'image' not in request.files:
            return jsonify({'success': False, 'message': 'No image provided'}), 400

        file = request.files['image']
        if file.filename == '':
            return jsonify({'success': False, 'message': 'No file selected'}), 400
        if not allowed_file(file.filename):
            return jsonify({'success': False, 'message': f'Unsupported file type: {file.filename}'}), 400

        decoded = image_service.decode(file.read())
        session = get_or_create_session(request.form.get('session_id'))
        image = image_service.fit_preview(decoded, session.settings.preview_max_width)
        session.run("load", image)
        logger.info(f"Session {session.session_id}: loaded {image.width}x{image.height}")

        return jsonify(session_state(session, message='Image loaded'))

    except (UnsharpStudioError, ValueError) as e:
        return jsonify({'success': False, 'message': str(e)}), 400
    except Exception as e:
        logger.error(f"Image loading error: {e}")
        return jsonify({'success': False, 'message': f'Error loading image: {str(e)}'}), 500


@app.route('/api/unsharp', methods=['POST'])
def unsharp_step():
    """Apply the unsharp mask (iterations times) to the session base."""
    return run_step("unsharp")


@app.route('/api/grayscale', methods=['POST'])
def grayscale_step():
    return run_step("grayscale")


@app.route('/api/threshold', methods=['POST'])
def threshold_step():
    return run_step("threshold")


@app.route('/api/contrast', methods=['POST'])
def contrast_step():
    return run_step("contrast")


@app.route('/api/reset', methods=['POST'])
def reset_step():
    """Drop every filter and go back to the loaded image."""
    return run_step("reset")


@app.route('/api/render', methods=['POST'])
def render_step():
    """Preview with new stroke settings; the base is never modified."""
    return run_step("render")


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'message': 'Unsharp Studio API is running',
        'active_sessions': len(sessions)
    })


@app.route('/api/clear-session', methods=['POST'])
def clear_session():
    """Clear a session and free memory."""
    payload = request.get_json(silent=True) or {}
    session = get_session(payload)
    if session is None:
        return jsonify({'success': False, 'message': 'Session not found'}), 400
    session.close()
    del sessions[session.session_id]
    return jsonify({'success': True, 'message': 'Session cleared'})


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({'error': f'File too large. Maximum size is {MAX_CONTENT_LENGTH // (1024 * 1024)}MB.'}), 413


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server error."""
    logger.error(f"Internal server error: {e}")
    return jsonify({'error': 'Internal server error'}), 500


def main():
    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )
    port = int(os.getenv("API_PORT", "5000"))
    logger.info(f"Starting Unsharp Studio API on port {port} (max upload {MAX_CONTENT_LENGTH // (1024 * 1024)}MB)")
    app.run(host=os.getenv("API_HOST", "127.0.0.1"), port=port, debug=False, threaded=True)


if __name__ == '__main__':
    main()
