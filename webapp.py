#!/usr/bin/env python3
"""
Flask Web API for the machine enrollment reconciler
Exposes import, machine list management and sending over HTTP
"""

import os
import logging
import threading
import uuid
from dataclasses import asdict
from pathlib import Path
from datetime import datetime
from flask import Flask, request, send_file, jsonify
from werkzeug.utils import secure_filename

from core.assembler import TABLEAU_OPTIONS, MachineValidationError, build_manual_machine
from core.auth_gate import TokenGate
from core.dispatcher import UploadDispatcher
from core.machine_list import MachineList
from core.payload import to_payload
from core.reconciler import DUPLICATES_REPORT, MISSING_REPORT, EnrollmentReconciler
from core.samba_client import create_transport
from processors.asset_export import AssetExportProcessor
from processors.inventory import InventoryProcessor
from processors.roster import RosterProcessor
from utils.config import Config, SecretStore
from utils.csv_utils import ParseError

# Configuration
UPLOAD_FOLDER = 'uploads'
OUTPUT_FOLDER = 'downloads'
ALLOWED_EXTENSIONS = {'csv'}
MAX_FILE_SIZE = 16 * 1024 * 1024  # 16MB max file size
TOKEN_HEADER = 'X-Enroll-Token'

# Upload field -> processor configuration
PROCESSORS = {
    'name_csv': {
        'name': 'Roster (name.csv)',
        'description': 'Names to look for in computer names',
        'class': RosterProcessor
    },
    'ocs_csv': {
        'name': 'Asset export (ocs.csv)',
        'description': 'Computer names with their serial number and user',
        'class': AssetExportProcessor
    },
    'inventory_csv': {
        'name': 'Inventory (inventory.csv)',
        'description': 'Serial number to inventory number mapping',
        'class': InventoryProcessor
    }
}


def allowed_file(filename):
    """Check if file extension is allowed"""
    if '.' not in filename:
        return False

    extension = filename.rsplit('.', 1)[1].lower()
    return extension in ALLOWED_EXTENSIONS


def setup_logging():
    """Setup logging for the web application"""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_filename = log_dir / f"webapp_{timestamp}.log"

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_filename),
            logging.StreamHandler()
        ]
    )


def machine_to_json(machine):
    """Wire payload plus the in-memory id the API addresses machines by"""
    data = to_payload(machine)
    data['id'] = str(machine.id)
    return data


def error_response(message, status, **extra):
    body = {'error': message}
    body.update(extra)
    return jsonify(body), status


def create_app(config=None, secrets=None, transport_factory=None, gate=None,
               upload_folder=UPLOAD_FOLDER, output_folder=OUTPUT_FOLDER, store_path=None):
    """Build the Flask application around explicit collaborators"""
    config = config or Config()
    secrets = secrets or SecretStore(config.env_file)
    if transport_factory is None:
        transport_factory = lambda: create_transport(config, secrets)
    if gate is None:
        gate = TokenGate(config.send_token)

    upload_folder = Path(upload_folder).resolve()
    output_folder = Path(output_folder).resolve()
    upload_folder.mkdir(parents=True, exist_ok=True)
    output_folder.mkdir(parents=True, exist_ok=True)

    app = Flask(__name__)
    app.secret_key = os.environ.get('FLASK_SECRET_KEY', 'your-secret-key-change-this')
    app.config['MAX_CONTENT_LENGTH'] = MAX_FILE_SIZE
    app.config['UPLOAD_FOLDER'] = str(upload_folder)
    app.config['OUTPUT_FOLDER'] = str(output_folder)

    machines = MachineList.load(store_path) if store_path else MachineList()
    lock = threading.Lock()
    send_lock = threading.Lock()
    app.extensions['machine_list'] = machines

    def persist():
        if store_path:
            machines.save(store_path)

    def current_gate():
        if isinstance(gate, TokenGate):
            return gate.with_token(request.headers.get(TOKEN_HEADER))
        return gate

    @app.route('/health')
    def health_check():
        """Health check endpoint"""
        configured = config.is_configured

        return jsonify({
            'status': 'healthy' if configured else 'configuration_error',
            'configured': configured,
            'test_mode': config.test_mode,
            'machines': len(machines),
            'processors_available': {
                field: processor['class']().describe() for field, processor in PROCESSORS.items()
            }
        })

    @app.route('/machines', methods=['GET'])
    def list_machines():
        with lock:
            return jsonify({
                'machines': [machine_to_json(machine) for machine in machines],
                'sort': {'key': machines.sort_key, 'ascending': machines.ascending}
            })

    @app.route('/machines', methods=['POST'])
    def add_machine():
        """Manual single-machine entry"""
        data = request.get_json(silent=True) or {}
        tableau = data.get('tableau', [])
        if not isinstance(tableau, list) or any(option not in TABLEAU_OPTIONS for option in tableau):
            return error_response(f"tableau must be a list of: {', '.join(TABLEAU_OPTIONS)}", 400)

        try:
            machine = build_manual_machine(
                config.snapshot(),
                end_user_name=data.get('endUserName', ''),
                asset_number=data.get('assetNumber', ''),
                serial_number=data.get('serialNumber', ''),
                friendly_name=data.get('friendlyName', ''),
                employee_type=data.get('employeeType'),
                device_type=data.get('deviceType'),
                sciper=data.get('sciper', ''),
                vpn=data.get('vpn'),
                filemaker=data.get('filemaker'),
                tableau=tableau,
                mindmanager=bool(data.get('mindmanager', False)),
                lina_exception=bool(data.get('linaException', False)),
                acrobat_reader_exception=bool(data.get('acrobatReaderException', False))
            )
        except MachineValidationError as e:
            return error_response(str(e), 400, missing_fields=e.missing_fields)

        with lock:
            machines.add(machine)
            machines.apply_sort()
            persist()

        app.logger.info(f"Machine {machine.asset_number} added manually")
        return jsonify({'message': 'Machine added successfully!', 'machine': machine_to_json(machine)}), 201

    @app.route('/machines', methods=['DELETE'])
    def clear_machines():
        with lock:
            removed = machines.clear()
            persist()
        return jsonify({'message': 'All machines have been removed.', 'removed': removed})

    @app.route('/machines/<machine_id>', methods=['GET'])
    def machine_details(machine_id):
        with lock:
            details = machines.details(machine_id)
        if details is None:
            return error_response('Machine not found', 404)
        return jsonify(details)

    @app.route('/machines/<machine_id>', methods=['DELETE'])
    def remove_machine(machine_id):
        with lock:
            removed = machines.remove(machine_id)
            persist()
        if not removed:
            return error_response('Machine not found', 404)
        return jsonify({'message': 'Machine removed.', 'removed': 1})

    @app.route('/machines/delete', methods=['POST'])
    def remove_selected():
        data = request.get_json(silent=True) or {}
        ids = data.get('ids') or []
        with lock:
            removed = machines.remove_selected(ids)
            persist()
        return jsonify({'message': 'Selected machines removed.', 'removed': removed})

    @app.route('/machines/sort', methods=['POST'])
    def sort_machines():
        data = request.get_json(silent=True) or {}
        try:
            with lock:
                machines.sort_by(data.get('key', ''))
                persist()
        except KeyError as e:
            return error_response(str(e.args[0]), 400)
        return list_machines()

    @app.route('/import', methods=['POST'])
    def import_files():
        """Reconcile the three uploaded exports and queue the machines"""
        job_id = str(uuid.uuid4())
        input_paths = {}

        try:
            for field in PROCESSORS:
                file = request.files.get(field)
                if file is None or file.filename == '':
                    return error_response(f'No file selected for {field}', 400)
                if not allowed_file(file.filename):
                    return error_response(f'Invalid file type for {field}. Allowed types: csv', 400)

                filename = secure_filename(file.filename)
                input_path = upload_folder / f"{job_id}_{field}_{filename}"
                file.save(str(input_path))
                input_paths[field] = input_path

            app.logger.info(f"Starting import job {job_id}")
            reconciler = EnrollmentReconciler(config.snapshot())
            result = reconciler.process_files(
                input_paths['name_csv'], input_paths['ocs_csv'], input_paths['inventory_csv'],
                missing_csv=output_folder / f"{job_id}_{MISSING_REPORT}",
                doublons_csv=output_folder / f"{job_id}_{DUPLICATES_REPORT}"
            )

        except ParseError as e:
            app.logger.error(f"Import job {job_id} failed: {e}")
            return error_response(f'Processing failed: {e}', 400)

        finally:
            # Clean up input files
            for input_path in input_paths.values():
                try:
                    input_path.unlink()
                except OSError as e:
                    app.logger.warning(f"Could not remove {input_path}: {e}")

        with lock:
            machines.extend(result.machines)
            machines.apply_sort()
            persist()

        reports = []
        if result.missing_report:
            reports.append({
                'filename': os.path.basename(result.missing_report),
                'description': 'Names without any matching computer'
            })
        if result.duplicates_report:
            reports.append({
                'filename': os.path.basename(result.duplicates_report),
                'description': 'Names matching more than one computer'
            })

        stats = asdict(result.stats)
        stats['match_rate'] = result.stats.match_rate

        app.logger.info(f"Import job {job_id} completed successfully")
        return jsonify({
            'job_id': job_id,
            'message': f"{len(result.machines)} machine(s) imported successfully!",
            'imported': len(result.machines),
            'stats': stats,
            'output_files': reports
        })

    @app.route('/download/<filename>')
    def download_file(filename):
        """Download a discrepancy report"""
        file_path = output_folder / secure_filename(filename)
        if not file_path.is_file():
            return error_response('File not found', 404)

        return send_file(str(file_path), as_attachment=True)

    @app.route('/send', methods=['POST'])
    def send_machines():
        """Authenticate, then upload every queued machine"""
        allowed, message = current_gate().challenge()
        if not allowed:
            app.logger.warning(f"Send refused: {message}")
            return error_response(message, 401)

        if not send_lock.acquire(blocking=False):
            return error_response('A send is already in progress.', 409)

        try:
            with lock:
                pending = list(machines)
            if not pending:
                return jsonify({'message': 'No machine to send.', 'sent': 0, 'total': 0, 'failed': 0})

            # The list stays editable while uploads run
            summary = UploadDispatcher(transport_factory).send(pending)

            with lock:
                machines.remove_selected(
                    result.machine_id for result in summary.results if result.success
                )
                persist()
        finally:
            send_lock.release()

        return jsonify({
            'message': summary.message,
            'sent': summary.sent,
            'total': summary.total,
            'failed': summary.failed,
            'results': [
                {
                    'id': str(result.machine_id),
                    'filename': result.filename,
                    'success': result.success,
                    'message': result.message
                }
                for result in summary.results
            ]
        })

    @app.route('/config', methods=['GET'])
    def show_config():
        settings = config.snapshot()
        return jsonify({
            'locationGroupId': settings.location_group_id,
            'platformId': settings.platform_id,
            'ownership': settings.ownership,
            'messageType': settings.message_type,
            'sambaPath': settings.samba_path or '',
            'username': secrets.get_username() or '',
            'testMode': settings.test_mode,
            'configured': config.is_configured
        })

    @app.route('/config', methods=['POST'])
    def save_config():
        data = request.get_json(silent=True) or {}
        test_mode = data.get('testMode')
        config.save(
            location_group_id=data.get('locationGroupId'),
            platform_id=data.get('platformId'),
            ownership=data.get('ownership'),
            message_type=data.get('messageType'),
            samba_path=data.get('sambaPath'),
            test_mode=None if test_mode is None else bool(test_mode)
        )
        if data.get('username') and data.get('password') is not None:
            secrets.set(data['username'], data['password'])
        return show_config()

    @app.route('/config', methods=['DELETE'])
    def clear_config():
        config.clear()
        secrets.clear()
        return jsonify({'message': 'Configuration cleared.'})

    return app


if __name__ == '__main__':
    setup_logging()

    # Check configuration on startup
    config = Config()
    secrets = SecretStore(config.env_file)
    if config.test_mode:
        logging.getLogger(__name__).info(f"TEST mode: payloads go to {config.test_storage_dir}")
    elif not config.validate_transport_config(secrets):
        missing_vars = config.get_missing_transport_vars(secrets)
        logging.getLogger(__name__).warning(f"Missing share configuration: {', '.join(missing_vars)}")
        print("⚠️  Warning: Missing share configuration variables. Sending will fail.")
        print(f"   Missing: {', '.join(missing_vars)}")

    app = create_app(config, secrets, store_path=os.environ.get('ENROLL_WEB_STORE', 'machines.json'))

    # Start the application
    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('FLASK_DEBUG', 'False').lower() == 'true'

    print(f"🚀 Starting enrollment Web API on port {port}")
    print(f"📁 Upload folder: {UPLOAD_FOLDER}")
    print(f"📁 Download folder: {OUTPUT_FOLDER}")
    print(f"🔧 Debug mode: {debug}")

    app.run(host='0.0.0.0', port=port, debug=debug)
