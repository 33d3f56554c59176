"""Open Service Broker API implementation."""

import asyncio
import logging
from functools import wraps
from typing import Any, Optional

from flask import Flask, request, jsonify
from pydantic import ValidationError as PydanticValidationError

from azure_blob_broker import __version__
from azure_blob_broker.api.auth import broker_auth_required
from azure_blob_broker.api.tokens import decode_operation, encode_operation
from azure_blob_broker.config import APIConfig, Config, config
from azure_blob_broker.exceptions import BlobBrokerError, ValidationError
from azure_blob_broker.models.factory import ServiceBrokerFactory
from azure_blob_broker.models.service_broker import (
    BindRequest, DeprovisionResponse, ErrorResponse, LastOperation, ProvisionRequest,
    ProvisionResponse, ServiceError
)
from azure_blob_broker.services.lifecycle import LifecycleOrchestrator
from azure_blob_broker.utils.error_handlers import ErrorResponseFormatter

logger = logging.getLogger(__name__)

PROVISIONING_RESULT_HEADER = 'X-Broker-Provisioning-Result'

# Global orchestrator instance
_orchestrator: Optional[LifecycleOrchestrator] = None


def get_orchestrator() -> LifecycleOrchestrator:
    """Get or create the lifecycle orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = LifecycleOrchestrator()
        logger.info("Lifecycle orchestrator initialized")
    return _orchestrator


def set_orchestrator(orchestrator: Optional[LifecycleOrchestrator]) -> None:
    """Replace the orchestrator used by the routes."""
    global _orchestrator
    _orchestrator = orchestrator


def async_route(f):
    """Decorator to handle async routes in Flask."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(f(*args, **kwargs))
        finally:
            loop.close()
    return wrapper


def validate_service_id(service_id: Optional[str]) -> bool:
    """Validate service ID."""
    return service_id in ServiceBrokerFactory.service_ids()


def validate_plan_id(plan_id: Optional[str]) -> bool:
    """Validate plan ID."""
    return plan_id in ServiceBrokerFactory.plan_ids()


def _error(error: str, description: str, status: int):
    return jsonify(ErrorResponse(error=error, description=description).model_dump(exclude_none=True)), status


def _bad_request(description: str):
    body, status = ErrorResponseFormatter.format_validation_error(description)
    return jsonify(body), status


def _service_error(error: ServiceError, operation: Optional[str] = None):
    body, status = ErrorResponseFormatter.format_osb_error(error, operation)
    return jsonify(body), status


def _async_required():
    return _error(
        "AsyncRequired",
        "This service plan requires client support for asynchronous service operations.",
        422
    )


def _accepts_incomplete() -> bool:
    return request.args.get('accepts_incomplete', '').lower() == 'true'


def _provisioning_result_from_header() -> Any:
    """Provisioning result handed back by the platform.

    Either the operation string returned by provision or the raw JSON token.
    """
    token = request.headers.get(PROVISIONING_RESULT_HEADER, '').strip()
    if not token:
        raise ValidationError(f"Missing {PROVISIONING_RESULT_HEADER} header")
    if token.startswith('{'):
        return token
    _, provisioning_result = decode_operation(token)
    return provisioning_result


def create_app(api_config: Optional[APIConfig] = None) -> Flask:
    """Create Flask application with OSB API routes."""
    api_config = api_config or config.api

    app = Flask(__name__)
    app.config['BROKER_USERNAME'] = api_config.username
    app.config['BROKER_PASSWORD'] = api_config.password

    # Configure CORS if enabled
    if api_config.enable_cors:
        from flask_cors import CORS
        CORS(app)

    @app.route('/v2/catalog', methods=['GET'])
    @broker_auth_required
    @async_route
    async def get_catalog():
        """Get service catalog."""
        result = await get_orchestrator().catalog()
        if not result.succeeded:
            return _service_error(result.error)
        return jsonify(result.reply.value), 200

    @app.route('/v2/service_instances/<instance_id>', methods=['PUT'])
    @broker_auth_required
    @async_route
    async def provision_service_instance(instance_id: str):
        """Provision a service instance."""
        if not _accepts_incomplete():
            return _async_required()

        data = request.get_json(silent=True)
        if not data:
            return _bad_request("Request body is required")

        try:
            provision_request = ProvisionRequest.model_validate(data)
        except PydanticValidationError as e:
            return _bad_request(f"Invalid request format: {e}")

        if not validate_service_id(provision_request.service_id):
            return _bad_request("Invalid service ID")

        if not validate_plan_id(provision_request.plan_id):
            return _bad_request("Invalid plan ID")

        result = await get_orchestrator().provision(instance_id, provision_request.parameters)
        if not result.succeeded:
            return _service_error(result.error, 'provision')

        response = ProvisionResponse(operation=encode_operation(LastOperation.PROVISION, result.result))
        return jsonify(response.model_dump(exclude_none=True)), 202

    @app.route('/v2/service_instances/<instance_id>', methods=['PATCH'])
    @broker_auth_required
    def update_service_instance(instance_id: str):
        """Update a service instance (not supported)."""
        return _error("NotSupported", "Service instance updates are not supported", 422)

    @app.route('/v2/service_instances/<instance_id>/last_operation', methods=['GET'])
    @broker_auth_required
    @async_route
    async def get_last_operation(instance_id: str):
        """Get the status of the last operation."""
        operation = request.args.get('operation')
        if not operation:
            return _bad_request("Missing operation parameter")

        try:
            last_operation, provisioning_result = decode_operation(operation)
        except BlobBrokerError as e:
            return _bad_request(e.message)

        result = await get_orchestrator().poll(instance_id, provisioning_result, last_operation)
        if not result.succeeded:
            return _service_error(result.error, 'poll')

        return jsonify(result.reply.value), 200

    @app.route('/v2/service_instances/<instance_id>', methods=['DELETE'])
    @broker_auth_required
    @async_route
    async def deprovision_service_instance(instance_id: str):
        """Deprovision a service instance."""
        service_id = request.args.get('service_id')
        plan_id = request.args.get('plan_id')

        if not service_id or not validate_service_id(service_id):
            return _bad_request("Invalid or missing service_id parameter")

        if not plan_id or not validate_plan_id(plan_id):
            return _bad_request("Invalid or missing plan_id parameter")

        if not _accepts_incomplete():
            return _async_required()

        try:
            provisioning_result = _provisioning_result_from_header()
        except BlobBrokerError as e:
            return _bad_request(e.message)

        result = await get_orchestrator().deprovision(instance_id, provisioning_result)
        if not result.succeeded:
            return _service_error(result.error, 'deprovision')

        response = DeprovisionResponse(operation=encode_operation(LastOperation.DEPROVISION, result.result))
        return jsonify(response.model_dump(exclude_none=True)), 202

    @app.route('/v2/service_instances/<instance_id>/service_bindings/<binding_id>', methods=['PUT'])
    @broker_auth_required
    @async_route
    async def create_service_binding(instance_id: str, binding_id: str):
        """Create a service binding."""
        data = request.get_json(silent=True)
        if not data:
            return _bad_request("Request body is required")

        try:
            bind_request = BindRequest.model_validate(data)
        except PydanticValidationError as e:
            return _bad_request(f"Invalid request format: {e}")

        if not validate_service_id(bind_request.service_id):
            return _bad_request("Invalid service ID")

        if not validate_plan_id(bind_request.plan_id):
            return _bad_request("Invalid plan ID")

        try:
            provisioning_result = _provisioning_result_from_header()
        except BlobBrokerError as e:
            return _bad_request(e.message)

        logger.info(f"Creating binding {binding_id} for instance {instance_id}")
        result = await get_orchestrator().bind(instance_id, provisioning_result, bind_request.parameters)
        if not result.succeeded:
            return _service_error(result.error, 'bind')

        return jsonify(result.reply.value), 201

    @app.route('/v2/service_instances/<instance_id>/service_bindings/<binding_id>', methods=['DELETE'])
    @broker_auth_required
    @async_route
    async def delete_service_binding(instance_id: str, binding_id: str):
        """Delete a service binding."""
        service_id = request.args.get('service_id')
        plan_id = request.args.get('plan_id')

        if not service_id or not validate_service_id(service_id):
            return _bad_request("Invalid or missing service_id parameter")

        if not plan_id or not validate_plan_id(plan_id):
            return _bad_request("Invalid or missing plan_id parameter")

        try:
            provisioning_result = _provisioning_result_from_header()
        except BlobBrokerError as e:
            return _bad_request(e.message)

        parameters = {}
        if request.args.get('container_name'):
            parameters['container_name'] = request.args['container_name']

        logger.info(f"Deleting binding {binding_id} for instance {instance_id}")
        result = await get_orchestrator().unbind(instance_id, provisioning_result, parameters)
        if not result.succeeded:
            return _service_error(result.error, 'unbind')

        return jsonify(result.reply.value), 200

    # Health check endpoint
    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            "status": "healthy",
            "service": "azure-blob-broker",
            "version": __version__
        }), 200

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return _error("NotFound", "Endpoint not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return _error("MethodNotAllowed", "Method not allowed for this endpoint", 405)

    @app.errorhandler(500)
    def internal_error(error):
        return _error("InternalError", "Internal server error", 500)

    return app


def run_server(server_config: Optional[Config] = None):
    """Run the Flask server."""
    server_config = server_config or config
    app = create_app(server_config.api)
    app.run(
        host=server_config.api.host,
        port=server_config.api.port,
        debug=server_config.api.debug
    )
