"""
Wires a ComplianceEngine from settings.

The agent, concept handler, graph writer, timeline engine and egress guard
are supplied by the caller; the graph client, LLM router and context store
are built from configuration.
"""

import logging

from regintel.agents.base import DomainAgent, EgressGuard, TimelineEngine
from regintel.config import Settings, settings
from regintel.graph.client import Neo4jGraphClient
from regintel.graph.concepts import CanonicalConceptHandler, GraphWriteService
from regintel.llm.ollama import OllamaRouter
from regintel.observability.logging_config import configure_logging
from regintel.services.compliance_engine import (
    ComplianceEngine,
    ComplianceEngineDeps,
    create_compliance_engine,
)
from regintel.stores.factory import create_context_store

logger = logging.getLogger(__name__)


def build_engine(
    agent: DomainAgent,
    concept_handler: CanonicalConceptHandler,
    graph_write: GraphWriteService,
    timeline_engine: TimelineEngine,
    egress_guard: EgressGuard,
    config: Settings = settings,
    setup_logging: bool = True,
) -> ComplianceEngine:
    if setup_logging:
        configure_logging(config.log_level, json_output=config.log_json)

    engine = create_compliance_engine(
        ComplianceEngineDeps(
            agent=agent,
            llm_router=OllamaRouter.from_settings(config),
            graph_client=Neo4jGraphClient.from_settings(config),
            graph_write=graph_write,
            concept_handler=concept_handler,
            timeline_engine=timeline_engine,
            egress_guard=egress_guard,
            context_store=create_context_store(config),
            include_disclaimer=config.include_disclaimer,
        )
    )
    logger.info(
        "Compliance engine ready (agent=%s, model=%s, environment=%s)",
        getattr(agent, "id", type(agent).__name__), config.llm_model, config.environment,
    )
    return engine
