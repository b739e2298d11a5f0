from flask import Blueprint, request, jsonify
from pathlib import Path, PureWindowsPath
import shutil
import logging

from theoremnote.core.context import get_project_root
from theoremnote.core.index import update_reference_index

editor_bp = Blueprint('editor', __name__)
logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'.md', '.markdown', '.txt'}


def is_safe_relative_path(filename: str) -> bool:
    """Reject absolute paths (POSIX or drive-qualified) and anything that climbs out of the project root."""
    if '..' in filename or filename.startswith(('/', '\\')):
        return False
    return not (Path(filename).is_absolute() or PureWindowsPath(filename).drive)


def get_document_folder():
    root = get_project_root()
    return Path(root) if root else None


@editor_bp.route('/api/get-source/<path:filename>')
def get_source(filename):
    """Get original source content for editing."""
    logger.debug(f"Editor: Handling get-source request for: {filename}")

    if not is_safe_relative_path(filename):
        logger.warning(f"Attempted directory traversal: {filename}")
        return jsonify({'error': 'Invalid filename'}), 403

    folder = get_document_folder()
    if folder is None:
        return jsonify({'error': 'No project is open'}), 409

    try:
        file_path = folder / filename

        if not file_path.exists() or file_path.suffix.lower() not in ALLOWED_EXTENSIONS:
            logger.warning(f"Editor: Source file not found or invalid: {file_path}")
            return jsonify({'error': 'File not found or invalid type', 'path': str(filename)}), 404

        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read()

        logger.info(f"Editor: Served source for: {filename} ({len(content)} bytes)")
        return jsonify({'content': content, 'path': str(filename)})

    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Editor: Error reading source {filename}: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500


@editor_bp.route('/api/save-document', methods=['POST'])
def save_document():
    """Save edited document with backup, then refresh the reference index."""
    data = request.get_json(silent=True) or {}
    filename = data.get('filename')
    content = data.get('content')

    if not filename or content is None:
        return jsonify({'error': 'Missing filename or content'}), 400

    if not is_safe_relative_path(filename):
        logger.warning(f"Attempted directory traversal: {filename}")
        return jsonify({'error': 'Invalid filename'}), 403

    folder = get_document_folder()
    if folder is None:
        return jsonify({'error': 'No project is open'}), 409

    file_path = folder / filename

    if not file_path.exists():
        return jsonify({'error': 'File not found'}), 404

    # Create backup
    backup_path = file_path.with_suffix(file_path.suffix + '.bak')
    try:
        shutil.copy(file_path, backup_path)
        logger.info(f"Editor: Backup created: {backup_path}")
    except OSError as e:
        logger.error(f"Editor: Failed to create backup: {e}")
        return jsonify({'error': 'Failed to create backup'}), 500

    # Write new content
    try:
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(content)
    except OSError as e:
        # Restore from backup if write failed
        if backup_path.exists():
            shutil.copy(backup_path, file_path)
        logger.error(f"Editor: Failed to save document: {e}")
        return jsonify({'error': 'Failed to save document'}), 500

    logger.info(f"Editor: Document saved: {filename}, size: {len(content)} bytes")

    doc_path = filename.replace("\\", "/")
    theorems = 0
    try:
        index = update_reference_index(doc_path, content, get_project_root())
        theorems = sum(1 for target in index.values() if target == doc_path)
    except (OSError, ValueError) as e:
        # Document is already written; index keeps its previous state
        logger.error(f"Editor: Failed to update reference index: {e}")

    return jsonify({'success': True, 'backup': str(backup_path), 'size': len(content), 'theorems': theorems})
