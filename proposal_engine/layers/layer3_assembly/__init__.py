"""Layer 3: Assembly - ProposalDocument with pending narrative slots."""

from .proposal_assembler import (
    ProposalAssembler,
    AssemblyOptions,
    extract_key_findings,
    check_document,
    ensure_valid_document,
    default_proposal_number,
)

__all__ = [
    "ProposalAssembler",
    "AssemblyOptions",
    "extract_key_findings",
    "check_document",
    "ensure_valid_document",
    "default_proposal_number",
]
