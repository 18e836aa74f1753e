"""Node factories for the recommendation graph."""
from tradewizard.workflow.nodes.agents import (create_agent_node,
                                               create_agent_nodes)
from tradewizard.workflow.nodes.consensus import create_consensus_engine_node
from tradewizard.workflow.nodes.cross_examination import \
    create_cross_examination_node
from tradewizard.workflow.nodes.ingestion import create_market_ingestion_node
from tradewizard.workflow.nodes.recommendation import \
    create_recommendation_generation_node
from tradewizard.workflow.nodes.thesis import create_thesis_construction_node

__all__ = [
    "create_agent_node",
    "create_agent_nodes",
    "create_consensus_engine_node",
    "create_cross_examination_node",
    "create_market_ingestion_node",
    "create_recommendation_generation_node",
    "create_thesis_construction_node",
]
