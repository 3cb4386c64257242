"""
Operator command line for the squares pool.

Usage:
    python -m squarespool pay SQUARE_ID
    python -m squarespool status BOARD_ID
    python -m squarespool assign BOARD_ID
    python -m squarespool validate BOARD_ID
    python -m squarespool score GAME_ID TEAM1_SCORE TEAM2_SCORE
    python -m squarespool table BOARD_ID

Uses the database selected by DB_TYPE / DATA_DIR.
"""

import argparse
import json
import sys
from typing import List, Optional

from . import config
from .exceptions import SquaresError
from .services import (
    AssignmentEngine,
    AssignmentValidator,
    BoardFillWatcher,
    GameResultsService,
)
from .storage import DatabaseInterface, DatabaseError, get_database


def _cmd_pay(db: DatabaseInterface, args: argparse.Namespace) -> int:
    result = BoardFillWatcher(db).record_payment(args.square_id)
    print(f"[+] Square {args.square_id} marked PAID ({result.paid_squares} paid)")
    print(f"    {result.message}")
    if result.assignment is not None:
        print(f"    Winning numbers (columns): {result.assignment.winning_numbers}")
        print(f"    Losing numbers (rows):     {result.assignment.losing_numbers}")
    return 0


def _cmd_status(db: DatabaseInterface, args: argparse.Namespace) -> int:
    summary = BoardFillWatcher(db).payment_status(args.board_id)
    if args.json:
        print(json.dumps(summary, indent=2))
        return 0

    stats = summary['paymentStats']
    print(f"[*] Board {summary['name']} ({summary['status']}): "
          f"{stats['paidSquares']} paid, {stats['pendingSquares']} pending, "
          f"{stats['totalSquares']} claimed")
    for user in summary['squaresByUser']:
        print(f"    {user['userId']:<20} paid: {user['paidCount']:<3} "
              f"pending: {user['pendingCount']}")
    return 0


def _cmd_assign(db: DatabaseInterface, args: argparse.Namespace) -> int:
    print(f"[*] Assigning board {args.board_id}...")
    result = AssignmentEngine(db).assign(args.board_id)
    print(f"[+] Assigned {result.assigned_squares} squares")
    print(f"    Winning numbers (columns): {result.winning_numbers}")
    print(f"    Losing numbers (rows):     {result.losing_numbers}")
    return 0


def _cmd_validate(db: DatabaseInterface, args: argparse.Namespace) -> int:
    report = AssignmentValidator(db).validate(args.board_id)
    if args.json:
        print(json.dumps(report.model_dump(by_alias=True, mode='json'), indent=2))
        return 0 if report.valid else 1

    marker = "[+]" if report.valid else "[-]"
    print(f"{marker} Board {args.board_id}: {'valid' if report.valid else 'INVALID'}")
    for warning in report.warnings:
        print(f"    Warning: {warning}")
    for error in report.errors:
        print(f"    Error: {error}")
    stats = report.stats
    print(f"    Squares: {stats.total_squares}, assigned: {stats.assigned_squares}, "
          f"duplicate positions: {stats.duplicate_positions}, "
          f"invalid positions: {stats.invalid_positions}")
    return 0 if report.valid else 1


def _cmd_score(db: DatabaseInterface, args: argparse.Namespace) -> int:
    result = GameResultsService(db).record_score(args.game_id, args.team1, args.team2)
    result.raise_for_error()

    digits = result.winning_numbers.as_tuple()
    if result.has_winner:
        print(f"[+] Winner: square {result.winner_square_id} "
              f"(user {result.winner_user_id}), payout {result.payout:.2f}, numbers {digits}")
    else:
        print(f"[+] No winning square for numbers {digits}")
    return 0


def _cmd_table(db: DatabaseInterface, args: argparse.Namespace) -> int:
    rows = GameResultsService(db).scoring_table(args.board_id)
    if args.json:
        print(json.dumps(rows, indent=2))
        return 0

    for row in rows:
        score = "-"
        if row['team1Score'] is not None and row['team2Score'] is not None:
            score = f"{row['team1Score']}-{row['team2Score']}"
        winner = row['winnerSquare']['userId'] if row['winnerSquare'] else ""
        payout = f"{row['payout']:.2f}" if row['payout'] is not None else ""
        print(f"  #{row['gameNumber']:<3} {row['round']:<13} {row['team1']} vs {row['team2']:<20} "
              f"{score:<8} {row['status']:<12} {winner} {payout}")
    print(f"[*] {len(rows)} games")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='squarespool',
        description='Squares pool assignment and scoring'
    )
    parser.add_argument('--log-level', default=None,
                        help='Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('pay', help='Record the payment for a square')
    p.add_argument('square_id')
    p.set_defaults(func=_cmd_pay)

    p = sub.add_parser('status', help='Show paid and pending squares per user')
    p.add_argument('board_id')
    p.add_argument('--json', action='store_true', help='Print the summary as JSON')
    p.set_defaults(func=_cmd_status)

    p = sub.add_parser('assign', help='Run the random assignment for a fully paid board')
    p.add_argument('board_id')
    p.set_defaults(func=_cmd_assign)

    p = sub.add_parser('validate', help='Check a board\'s assignments')
    p.add_argument('board_id')
    p.add_argument('--json', action='store_true', help='Print the report as JSON')
    p.set_defaults(func=_cmd_validate)

    p = sub.add_parser('score', help='Record a final score and find the winning square')
    p.add_argument('game_id')
    p.add_argument('team1', type=int, help='Team 1 final score')
    p.add_argument('team2', type=int, help='Team 2 final score')
    p.set_defaults(func=_cmd_score)

    p = sub.add_parser('table', help='Show the scoring table for a board')
    p.add_argument('board_id')
    p.add_argument('--json', action='store_true', help='Print the table as JSON')
    p.set_defaults(func=_cmd_table)

    return parser


def main(argv: Optional[List[str]] = None, db: Optional[DatabaseInterface] = None) -> int:
    args = build_parser().parse_args(argv)
    config.setup_logging(args.log_level)

    try:
        return args.func(db or get_database(), args)
    except (SquaresError, DatabaseError) as e:
        print(f"[-] {type(e).__name__}: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
