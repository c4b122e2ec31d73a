"""Shared pytest fixtures."""

import itertools
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from proposal_engine.config import Settings
from proposal_engine.layers.layer1_pricing import PricingEngine, RateConfig
from proposal_engine.layers.layer2_phases import PhaseBuilder
from proposal_engine.layers.layer3_assembly import ProposalAssembler
from proposal_engine.layers.layer4_narrative import NarrativeExecutor
from proposal_engine.models import AuditExtract
from proposal_engine.services import ProposalPipeline


FIXED_NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        gemini_api_key="test-gemini-key",
        groq_api_key="test-groq-key",
        default_provider="gemini",
        narrative_batch_size=5,
        narrative_batch_delay_seconds=0.5,
        approve_link_template="https://wranngle.com/approve/{proposal_number}",
        cta_book_call_link="https://wranngle.com/call",
    )


@pytest.fixture
def sample_audit_dict():
    """Audit extract with three fixes, three systems and a $2,000 monthly bleed."""
    return {
        "client": {
            "account_name": "Acme Dental",
            "industry": "SaaS",
            "primary_contact": {"name": "Jordan Lee", "email": "jordan@acme.test"},
        },
        "audit": {"audit_id": "AUD-2026-001", "audit_date": "2026-02-20"},
        "workflow": {"name": "Lead Intake"},
        "systems": ["HubSpot", "Gmail", "Calendly"],
        "findings": [
            {"category": "Response time", "status": "warning", "finding": "Leads wait 6 hours for a first reply"},
            {"category": "Data entry", "status": "critical", "finding": "Manual CRM entry drops 15% of leads"},
            {"category": "Scheduling", "status": "healthy", "finding": "Calendar booking works"},
            {"category": "Follow-up", "status": "critical", "finding": "No follow-up sequence after the first call"},
        ],
        "recommended_fixes": [
            {
                "fix_id": "F1",
                "problem": "Manual CRM entry",
                "fix": "Automate CRM entry from web forms",
                "effort_tier": "moderate",
            },
            {
                "fix_id": "F2",
                "problem": "Slow replies",
                "fix": "AI reply drafting for new leads",
                "effort_tier": {"tier": "complex"},
            },
            {
                "fix_id": "F3",
                "problem": "No follow-up",
                "fix": "Follow-up email sequence",
                "effort_tier": "quick win",
            },
        ],
        "bleed": {"monthly_amount": "$2,000"},
        "integration_types": ["api_available"],
    }


@pytest.fixture
def sample_audit(sample_audit_dict):
    return AuditExtract.model_validate(sample_audit_dict)


@pytest.fixture(scope="session")
def rate_config():
    """Bundled pricing tables."""
    return RateConfig.load()


@pytest.fixture
def engine(rate_config):
    return PricingEngine(rate_config)


@pytest.fixture
def id_factory():
    """Deterministic ids: id-001, id-002, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter):03d}"


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def phase_builder(id_factory):
    return PhaseBuilder(id_factory)


@pytest.fixture
def assembler(settings, id_factory, clock):
    return ProposalAssembler(
        settings,
        id_factory=id_factory,
        proposal_number_factory=lambda now: f"WRN-{now.year}-1234",
        clock=clock,
    )


@pytest.fixture
def pricing(engine, sample_audit):
    return engine.calculate(sample_audit)


@pytest.fixture
def phases(phase_builder, sample_audit, pricing):
    return phase_builder.build_phases(sample_audit, pricing)


@pytest.fixture
def document(assembler, sample_audit, pricing, phases):
    """Assembled document with every narrative slot still pending."""
    return assembler.assemble(sample_audit, pricing, phases)


@pytest.fixture
def mock_backend():
    """Text client mock returning one fixed sentence."""
    backend = AsyncMock()
    backend.provider = "gemini"
    backend.generate = AsyncMock(return_value="Generated narrative sentence.")
    return backend


@pytest.fixture
def fake_sleep():
    """Replaces asyncio.sleep; records the requested delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def executor(mock_backend, settings, fake_sleep):
    return NarrativeExecutor(
        backends={"gemini": mock_backend, "groq": mock_backend},
        settings=settings,
        sleep=fake_sleep,
    )


@pytest.fixture
def pipeline(engine, phase_builder, assembler, executor, settings):
    return ProposalPipeline(
        pricing_engine=engine,
        phase_builder=phase_builder,
        assembler=assembler,
        executor=executor,
        settings=settings,
    )


@pytest.fixture
async def async_client(pipeline):
    """API client with the pipeline dependency replaced by the test pipeline."""
    from proposal_engine.main import app
    from proposal_engine.services import get_pipeline

    app.dependency_overrides[get_pipeline] = lambda: pipeline
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
