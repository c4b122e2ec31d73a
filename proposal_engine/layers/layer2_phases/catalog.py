"""Fixed deliverable catalog for the three proposal phases."""

from proposal_engine.models.proposal import Deliverable

AUDIT_DELIVERABLES = [
    {
        "name": "Traffic Light Report",
        "description": "Single-page diagnostic with category health scores and revenue bleed analysis",
    },
    {
        "name": "Key Findings",
        "description": "Prioritized list of issues with effort/impact assessment",
    },
    {
        "name": "Recommended Fixes",
        "description": "Actionable improvements with expected ROI",
    },
]

DESIGN_DELIVERABLES = [
    {
        "name": "Requirements Document",
        "description": "Finalized functional and technical requirements",
        "acceptance_criteria": [
            "All stakeholder requirements captured",
            "Success metrics defined",
            "Client sign-off obtained",
        ],
    },
    {
        "name": "Solution Architecture",
        "description": "Technical design for system integrations and data flows",
        "acceptance_criteria": [
            "Integration points mapped for all systems",
            "Data schema defined",
            "Security requirements addressed",
        ],
    },
    {
        "name": "Implementation Plan",
        "description": "Detailed project timeline and resource allocation",
        "acceptance_criteria": [
            "Task breakdown with dependencies",
            "Risk mitigation strategies",
            "Communication cadence established",
        ],
    },
]

CORE_BUILD_DELIVERABLE = {
    "name": "Core Automation System",
    "description": "Primary workflow automation implementation",
    "acceptance_criteria": [
        "All critical path automations functional",
        "Error handling implemented",
        "Logging and monitoring in place",
    ],
}

INTEGRATIONS_DELIVERABLE = {
    "name": "System Integrations",
    "acceptance_criteria": [
        "API connections established and tested",
        "Data synchronization verified",
        "Failover handling configured",
    ],
}

AI_COMPONENTS_DELIVERABLE = {
    "name": "AI Processing Components",
    "description": "Machine learning or AI-powered automation elements",
    "acceptance_criteria": [
        "Model accuracy meets requirements",
        "Processing latency within SLA",
        "Edge cases handled gracefully",
    ],
}

INTERNAL_TESTING_DELIVERABLE = {
    "name": "Internal Testing Complete",
    "description": "Developer testing and code review",
    "acceptance_criteria": [
        "Unit tests passing",
        "Integration tests complete",
        "Code review approved",
    ],
}

TEST_DELIVERABLES = [
    {
        "name": "Alpha Testing",
        "description": "Internal QA with synthetic data",
        "acceptance_criteria": [
            "All test scenarios passed",
            "Performance benchmarks met",
            "Bug fixes completed",
        ],
    },
    {
        "name": "Beta Testing",
        "description": "Client stakeholder testing with real workflows",
        "acceptance_criteria": [
            "User acceptance criteria met",
            "Feedback incorporated",
            "Sign-off from key stakeholders",
        ],
    },
    {
        "name": "Performance Validation",
        "description": "Load testing and optimization",
        "acceptance_criteria": [
            "Response times within SLA",
            "System stable under expected load",
            "No memory leaks or resource issues",
        ],
    },
]

DEPLOY_DELIVERABLES = [
    {
        "name": "Production Deployment",
        "description": "Live system deployment with monitoring",
        "acceptance_criteria": [
            "System live in production",
            "Monitoring dashboards active",
            "Alerting configured",
        ],
    },
    {
        "name": "User Training",
        "description": "Training sessions for end users and administrators",
        "acceptance_criteria": [
            "All designated users trained",
            "Training materials delivered",
            "Q&A sessions completed",
        ],
    },
    {
        "name": "Documentation Package",
        "description": "Technical and user documentation",
        "acceptance_criteria": [
            "User guide delivered",
            "Admin documentation complete",
            "Troubleshooting guide provided",
        ],
    },
    {
        "name": "Go-Live Support",
        "description": "Dedicated support during initial production period",
        "acceptance_criteria": [
            "Support coverage confirmed",
            "Escalation paths defined",
            "Warranty period begins",
        ],
    },
]

SCALE_MILESTONES = [
    {
        "milestone_number": "3.1",
        "milestone_name": "Optimize",
        "description": "Performance optimization and efficiency improvements based on production metrics.",
        "deliverables": [
            {"name": "Performance Analysis", "description": "Review of production metrics and bottlenecks"},
            {"name": "Optimization Implementation", "description": "Targeted improvements to speed and efficiency"},
        ],
    },
    {
        "milestone_number": "3.2",
        "milestone_name": "Expand",
        "description": "Extension to additional workflows, teams, or business units.",
        "deliverables": [
            {"name": "Expansion Roadmap", "description": "Plan for scaling to additional use cases"},
            {"name": "Additional Integrations", "description": "New system connections as needed"},
        ],
    },
]


def deliverables_from(entries: list[dict]) -> list[Deliverable]:
    """Fresh Deliverable models for a catalog list."""
    return [Deliverable.model_validate(entry) for entry in entries]
