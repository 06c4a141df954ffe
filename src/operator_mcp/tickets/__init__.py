"""Ticket models and frontmatter parsing."""

from .models import LaunchOptions, TicketInfo, TicketMetadata, TicketStatus, TicketType
from .parser import (
    current_session_token,
    extract_ticket_type,
    find_tickets_dir,
    is_ticket_file,
    parse,
    parse_from_path,
    ticket_from_path,
)

__all__ = [
    "LaunchOptions",
    "TicketInfo",
    "TicketMetadata",
    "TicketStatus",
    "TicketType",
    "current_session_token",
    "extract_ticket_type",
    "find_tickets_dir",
    "is_ticket_file",
    "parse",
    "parse_from_path",
    "ticket_from_path",
]
