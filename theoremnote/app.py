"""
Theorem Note
Flask service exposing the Markdown renderer, project settings and the
reference index to the editor front end.
"""

from flask import Flask, request, jsonify
import asyncio
import os
import sys
import logging
import traceback
from pathlib import Path

from theoremnote.version_info import __version__ as VERSION
from theoremnote.core.logging_config import setup_logging
from theoremnote.core.config import GlobalConfig, FontSettings, ProjectConfig, load_project_config, save_project_config
from theoremnote.core.context import RenderContext, get_project_root, set_project_root
from theoremnote.core.exceptions import RenderError
from theoremnote.core.index import FileReferenceIndex
from theoremnote.core.renderer import render_sync
from theoremnote.api.editor import editor_bp

# Initialize Logging
DEBUG_MODE = os.environ.get('FLASK_ENV') == 'development'

if getattr(sys, 'frozen', False):
    # If frozen, use the directory of the executable for persistent logs
    BASE_DIR = Path(sys.executable).parent
else:
    BASE_DIR = Path(__file__).resolve().parent.parent

LOG_DIR = Path(os.environ.get('THEOREM_NOTE_LOG_DIR') or BASE_DIR / 'logs')
setup_logging(LOG_DIR, DEBUG_MODE)

logger = logging.getLogger(__name__)
logger.info(f"Application starting - Version {VERSION}")

app = Flask(__name__)
app.register_blueprint(editor_bp)

GLOBAL_CONFIG = GlobalConfig()

# Reopen the last project, if any
if GLOBAL_CONFIG.get_last_opened():
    set_project_root(GLOBAL_CONFIG.get_last_opened())


@app.errorhandler(500)
def internal_error(error):
    logger.error(f"500 Error: {error}\n{traceback.format_exc()}")
    return jsonify({'error': f"Internal Server Error: {error}"}), 500


@app.route('/api/version')
def get_version():
    return jsonify({'version': VERSION})


@app.route('/api/render', methods=['POST'])
def render_markdown():
    """Render extended Markdown against the current project root."""
    data = request.get_json(silent=True) or {}
    content = data.get('content')
    if content is None:
        return jsonify({'error': 'Missing content'}), 400

    try:
        html = render_sync(content, RenderContext.from_project_root())
    except RenderError as e:
        logger.error(f"Render failed: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500

    return jsonify({'html': html})


@app.route('/api/root', methods=['GET'])
def get_root():
    return jsonify({'root': get_project_root()})


@app.route('/api/root', methods=['POST'])
def set_root():
    """Open a project folder."""
    data = request.get_json(silent=True) or {}
    path = data.get('path')

    if not path:
        return jsonify({'error': 'Missing project path'}), 400

    path_obj = Path(path)
    if not path_obj.is_dir():
        return jsonify({'error': 'Directory does not exist'}), 400

    set_project_root(str(path_obj))
    try:
        GLOBAL_CONFIG.set_last_opened(get_project_root())
    except OSError as e:
        logger.error(f"Failed to persist last opened project: {e}")

    return jsonify({'success': True, 'root': get_project_root()})


@app.route('/api/references')
def get_references():
    root = get_project_root()
    try:
        references = asyncio.run(FileReferenceIndex().lookup_references(root))
    except (OSError, ValueError) as e:
        logger.error(f"Error reading reference index: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500
    return jsonify({'root': root, 'references': references})


@app.route('/api/font-settings', methods=['GET'])
def get_font_settings():
    config = load_project_config(get_project_root())
    return jsonify(config.to_dict()['font_settings'])


@app.route('/api/font-settings', methods=['POST'])
def update_font_settings():
    root = get_project_root()
    if not root:
        return jsonify({'error': 'No project is open'}), 409

    data = request.get_json(silent=True) or {}
    try:
        config = ProjectConfig(font_settings=FontSettings.from_dict(data))
    except (TypeError, ValueError) as e:
        return jsonify({'error': f'Invalid font settings: {e}'}), 400

    try:
        save_project_config(root, config)
    except OSError as e:
        logger.error(f"Failed to save font settings: {e}", exc_info=True)
        return jsonify({'error': 'Failed to save font settings'}), 500

    return jsonify({'success': True, 'font_settings': config.to_dict()['font_settings']})


if __name__ == '__main__':
    app.run(debug=DEBUG_MODE)
