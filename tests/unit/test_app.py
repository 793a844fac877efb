"""Unit tests for the FastAPI app factories, configuration and CLI."""

import os
from unittest.mock import patch

import pytest
from fastapi import FastAPI

from insurance_mesh import __version__, create_agent_app, create_app
from insurance_mesh.__main__ import (
    RELOAD_FACTORY,
    build_parser,
    main,
    parse_args,
    run_query,
    settings_from_args,
)
from insurance_mesh.app import serve_app
from insurance_mesh.config import MeshSettings
from insurance_mesh.dependencies import get_settings

FLAGSHIP_QUERY = (
    "For customer CUST-12345, check their active policies, "
    "assess if they need additional coverage, and show any pending claims"
)


def test_create_app_returns_fastapi_instance(test_settings):
    """Test that create_app returns a FastAPI instance."""
    app = create_app(settings=test_settings)
    assert isinstance(app, FastAPI)


def test_create_app_metadata(test_settings):
    """Test that the gateway app has correct metadata."""
    app = create_app(settings=test_settings)
    assert app.title == "insurance-mesh"
    assert app.version == "0.1.0"
    assert app.state.role == "gateway"


def test_create_app_includes_mesh_routes(test_settings):
    """Test that health and mesh routers are registered on the gateway."""
    app = create_app(settings=test_settings)

    routes = [route.path for route in app.routes]  # type: ignore[attr-defined]
    assert "/api/v1/health" in routes
    assert "/api/v1/mesh/resolve" in routes
    assert "/api/v1/mesh/pipeline/stream" in routes
    assert "/api/v1/agent" not in routes


def test_create_agent_app_routes(test_settings):
    """Test that an agent app serves describe and invoke, not the mesh API."""
    app = create_agent_app("claims", settings=test_settings)

    routes = [route.path for route in app.routes]  # type: ignore[attr-defined]
    assert "/api/v1/agent" in routes
    assert "/api/v1/actions/{action_name}/invoke" in routes
    assert "/api/v1/mesh/resolve" not in routes
    assert app.state.role == "claims"
    assert app.state.agent.agent_id == "claims"


def test_create_agent_app_unknown_domain(test_settings):
    """Test that an unknown domain without a registry is rejected."""
    with pytest.raises(KeyError):
        create_agent_app("billing", settings=test_settings)


def test_create_app_has_cors_middleware(test_settings):
    """Test that CORS middleware is configured."""
    app = create_app(settings=test_settings)

    middleware_classes = [m.cls.__name__ for m in app.user_middleware]  # type: ignore[attr-defined]
    assert "CORSMiddleware" in middleware_classes


def test_version_constant():
    """Test that __version__ is defined and matches app version."""
    assert __version__ == "0.1.0"


def test_settings_defaults():
    """Test default settings values."""
    settings = MeshSettings()
    assert settings.port == 8000
    assert settings.min_confidence == 0.25
    assert settings.retry_attempts == 3
    assert settings.scorer == "keyword"
    assert len(settings.agent_endpoints) == 4


def test_settings_from_environment(monkeypatch):
    """Test that MESH_ environment variables override defaults."""
    monkeypatch.setenv("MESH_MIN_CONFIDENCE", "0.4")
    monkeypatch.setenv("MESH_AGENT_ENDPOINTS", '["http://claims:7872"]')

    settings = MeshSettings()

    assert settings.min_confidence == 0.4
    assert settings.agent_endpoints == ["http://claims:7872"]


def test_cli_gateway_embedded():
    """Test that --embedded runs the domain agents in-process."""
    args = build_parser().parse_args(["--embedded", "--port", "9000"])
    settings = settings_from_args(args)

    assert settings.agent_name is None
    assert settings.embedded_agents is True
    assert settings.agent_endpoints == []
    assert settings.port == 9000


def test_cli_agent_uses_default_port():
    """Test that an agent command picks its domain's default port."""
    args = build_parser().parse_args(["underwriting", "--log-level", "DEBUG"])
    settings = settings_from_args(args)

    assert settings.agent_name == "underwriting"
    assert settings.port == 7873
    assert settings.log_level == "DEBUG"


def test_cli_repeated_agent_endpoints():
    """Test that --agent can be given several times."""
    args = build_parser().parse_args(
        ["--agent", "http://a:7871", "--agent", "http://b:7872", "--scorer", "ollama"]
    )
    settings = settings_from_args(args)

    assert settings.agent_endpoints == ["http://a:7871", "http://b:7872"]
    assert settings.scorer == "ollama"


def test_cli_query_arguments():
    """Test that 'query' takes the request text and pipeline options."""
    args = parse_args(["query", "list customer CUST-1's policies", "--embedded", "--mode", "independent"])
    settings = settings_from_args(args)

    assert args.service == "query"
    assert args.text == "list customer CUST-1's policies"
    assert args.mode == "independent"
    assert settings.agent_name is None
    assert settings.port == 8000
    assert settings.embedded_agents is True


@pytest.mark.parametrize("argv", [["query"], ["underwriting", "list my policies"]])
def test_cli_rejects_misplaced_request_text(argv):
    """Test that request text is required for 'query' and refused elsewhere."""
    with pytest.raises(SystemExit):
        parse_args(argv)


@pytest.mark.asyncio
async def test_run_query_single_action(test_settings):
    """Test that a query resolves and invokes one action on the embedded agents."""
    output, ok = await run_query(
        test_settings, "Create a life insurance policy for John Doe with $500,000 coverage"
    )

    assert ok
    assert output.startswith("[policy.createPolicy]\n")
    assert "Coverage Amount: $500000.00" in output


def test_main_query_pipeline_reports_failed_steps(capsys):
    """Test the pipeline query prints merged results and flags failed steps."""
    exit_code = main(["query", FLAGSHIP_QUERY, "--embedded", "--pipeline", "--log-level", "ERROR"])

    out = capsys.readouterr().out
    assert exit_code == 1
    assert "[policy.listCustomerPolicies]" in out
    assert "[claims.getClaimsSummary]" in out
    assert "! step 1 (assess if they need additional coverage) failed" in out


def test_main_query_unmatched_request(capsys):
    """Test that an unresolvable query prints the error code and exits non-zero."""
    exit_code = main(["query", "what is the weather in Paris", "--embedded", "--log-level", "ERROR"])

    assert exit_code == 1
    assert "no_matching_action" in capsys.readouterr().err


def test_main_reload_uses_factory_import_string():
    """Test that --reload hands uvicorn an import string and exports the settings."""
    with (
        patch.dict(os.environ, {}),
        patch("insurance_mesh.__main__.uvicorn.run") as mock_run,
    ):
        main(["claims", "--reload", "--log-level", "WARNING"])

        assert os.environ["MESH_AGENT_NAME"] == "claims"
        assert os.environ["MESH_PORT"] == "7872"

    args, kwargs = mock_run.call_args
    assert args == (RELOAD_FACTORY,)
    assert kwargs["factory"] is True
    assert kwargs["reload"] is True
    assert kwargs["port"] == 7872


def test_serve_app_builds_app_from_environment(monkeypatch):
    """Test that the reload factory reads the agent name from MESH_ variables."""
    monkeypatch.setenv("MESH_AGENT_NAME", "claims")
    get_settings.cache_clear()
    try:
        app = serve_app()
    finally:
        get_settings.cache_clear()

    assert app.state.role == "claims"
