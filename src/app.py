"""
Flask web service for Disc Bracket.

Serves standings, bracket projections and leaderboards for each tournament
in the data directory, records scores for matches, and streams change
notifications to live viewers.
"""
import os
import re
import time
import yaml
from filelock import FileLock
from flask import Flask, jsonify, request, Response, stream_with_context, abort
from discbracket.models import Match, MatchStatus, Score, Team, TournamentFormat
from discbracket.formats import compute_tournament_view, project
from discbracket.standings import calculate_leaderboard, compute_standings, summarize_matches

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))

LIVE_POLL_SECONDS = float(os.environ.get('LIVE_POLL_SECONDS', '3'))
LIVE_HEARTBEAT_SECONDS = float(os.environ.get('LIVE_HEARTBEAT_SECONDS', '15'))
LEADERBOARD_TOP_N = 5

TOURNAMENT_FILE = 'tournament.yaml'
TEAMS_FILE = 'teams.yaml'
MATCHES_FILE = 'matches.yaml'

_TOURNAMENT_ID_PATTERN = re.compile(r'^[a-z0-9][a-z0-9_-]*$', re.IGNORECASE)


def _tournaments_dir() -> str:
    return os.path.join(DATA_DIR, 'tournaments')


def _tournament_dir(tournament_id: str) -> str:
    """Return data directory for a tournament, or 404 for an invalid or unknown id."""
    if not _TOURNAMENT_ID_PATTERN.match(tournament_id or ''):
        abort(404)
    path = os.path.join(_tournaments_dir(), tournament_id)
    if not os.path.isdir(path):
        abort(404)
    return path


@app.errorhandler(404)
def not_found(e):
    """JSON 404 for unknown tournaments, matches and routes."""
    return jsonify({'error': 'Not found'}), 404


def _tournament_lock(tournament_dir: str) -> FileLock:
    return FileLock(os.path.join(tournament_dir, '.lock'), timeout=10)


def _load_yaml(path: str, default):
    """Load a YAML file, returning default when it is missing, empty or unreadable."""
    if not os.path.exists(path):
        return default
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return default
    return data if data else default


def list_tournament_ids() -> list:
    """Return the ids of every tournament directory, sorted."""
    tournaments_dir = _tournaments_dir()
    if not os.path.isdir(tournaments_dir):
        return []
    return sorted(
        name for name in os.listdir(tournaments_dir)
        if _TOURNAMENT_ID_PATTERN.match(name) and os.path.isdir(os.path.join(tournaments_dir, name))
    )


def load_tournament(tournament_dir: str) -> dict:
    """Load tournament metadata (name, format, optional pool count)."""
    data = _load_yaml(os.path.join(tournament_dir, TOURNAMENT_FILE), {})
    if not isinstance(data, dict):
        app.logger.warning(f'Ignoring malformed {TOURNAMENT_FILE} in {tournament_dir}')
        data = {}
    tournament_id = os.path.basename(tournament_dir)
    return {
        'id': tournament_id,
        'name': data.get('name', tournament_id),
        'format': TournamentFormat.parse(data.get('format')),
        'pools': data.get('pools') if isinstance(data.get('pools'), int) else None,
    }


def _load_records(path: str, factory) -> list:
    records = _load_yaml(path, [])
    if not isinstance(records, list):
        app.logger.warning(f'Expected a list in {path}, got {type(records).__name__}')
        return []
    loaded = []
    for record in records:
        try:
            loaded.append(factory(record))
        except ValueError as e:
            app.logger.warning(f'Skipping record in {path}: {e}')
    return loaded


def load_teams(tournament_dir: str) -> list:
    """Team source: load the tournament roster in roster order."""
    return _load_records(os.path.join(tournament_dir, TEAMS_FILE), Team.from_dict)


def load_matches(tournament_dir: str) -> list:
    """Match source: load every match of the tournament."""
    return _load_records(os.path.join(tournament_dir, MATCHES_FILE), Match.from_dict)


def save_match_records(tournament_dir: str, records: list):
    """Save raw match records to YAML file."""
    with open(os.path.join(tournament_dir, MATCHES_FILE), 'w', encoding='utf-8') as f:
        yaml.dump(records, f, default_flow_style=False, sort_keys=False)


def _find_match_record(records: list, match_id: str):
    for record in records:
        if not isinstance(record, dict):
            continue
        record_id = record.get('id', record.get('_id'))
        if record_id is not None and str(record_id) == match_id:
            return record
    return None


def _write_result(record: dict, match: Match) -> None:
    """Copy status, score and winner onto a raw record, leaving every other key alone."""
    record['status'] = match.status.value
    if match.score is not None:
        record['score'] = match.score.to_dict()
    record.pop('winnerTeamId', None)
    if match.winner_id is not None:
        record['winnerId'] = match.winner_id
    else:
        record.pop('winnerId', None)


def _load_snapshot(tournament_id: str):
    tournament_dir = _tournament_dir(tournament_id)
    return load_tournament(tournament_dir), load_teams(tournament_dir), load_matches(tournament_dir)


def _tournament_summary(tournament: dict) -> dict:
    return {'id': tournament['id'], 'name': tournament['name'], 'format': tournament['format'].value}


def _parse_score(data):
    """Parse a score payload. Returns (Score or None, error message or None)."""
    if data is None:
        return None, None
    if not isinstance(data, dict):
        return None, 'Score must be an object with forA and forB'
    for_a = data.get('forA', data.get('teamA'))
    for_b = data.get('forB', data.get('teamB'))
    if isinstance(for_a, bool) or isinstance(for_b, bool) or not isinstance(for_a, int) or not isinstance(for_b, int):
        return None, 'Scores must be integers'
    if for_a < 0 or for_b < 0:
        return None, 'Scores cannot be negative'
    return Score(for_a, for_b), None


def apply_score_update(match: Match, score, status) -> None:
    """
    Apply a score and/or status change to a match.

    A score on a scheduled match starts it. Completing a scored match sets the
    winner to the higher scorer, or clears it on a tie.
    """
    if score is not None:
        match.score = score
        if match.status is MatchStatus.SCHEDULED:
            match.status = MatchStatus.ONGOING
    if status is not None:
        match.status = status
    if match.status is MatchStatus.COMPLETED and match.score is not None:
        if match.score.for_a > match.score.for_b:
            match.winner_id = match.team_a
        elif match.score.for_b > match.score.for_a:
            match.winner_id = match.team_b
        else:
            match.winner_id = None
    elif match.status is not MatchStatus.COMPLETED:
        match.winner_id = None


@app.route('/api/tournaments')
def api_tournaments():
    """List tournaments in the data directory."""
    tournaments = [_tournament_summary(load_tournament(os.path.join(_tournaments_dir(), tid)))
                   for tid in list_tournament_ids()]
    return jsonify({'tournaments': tournaments})


@app.route('/api/tournaments/<tournament_id>/standings')
def api_standings(tournament_id):
    """Standings per pool (or a single 'Overall' table)."""
    tournament, teams, matches = _load_snapshot(tournament_id)
    standings = compute_standings(teams, matches, tournament['format'], tournament['pools'])
    return jsonify({
        'tournament': _tournament_summary(tournament),
        'standings': {pool: [s.to_dict() for s in rows] for pool, rows in standings.items()},
    })


@app.route('/api/tournaments/<tournament_id>/bracket')
def api_bracket(tournament_id):
    """Bracket slots and edges for the tournament's format."""
    tournament, teams, matches = _load_snapshot(tournament_id)
    projection = project(teams, matches, tournament['format'], num_pools=tournament['pools'])
    return jsonify({'format': tournament['format'].value, **projection.to_dict()})


@app.route('/api/tournaments/<tournament_id>/view')
def api_view(tournament_id):
    """Standings and bracket together, computed from one snapshot."""
    tournament, teams, matches = _load_snapshot(tournament_id)
    view = compute_tournament_view(teams, matches, tournament['format'], tournament['pools'])
    return jsonify({'tournament': _tournament_summary(tournament), **view.to_dict()})


@app.route('/api/tournaments/<tournament_id>/leaderboard')
def api_leaderboard(tournament_id):
    """Ranked leaderboard with match counts."""
    tournament, teams, matches = _load_snapshot(tournament_id)
    return jsonify({
        'tournament': _tournament_summary(tournament),
        'standings': calculate_leaderboard(teams, matches),
        **summarize_matches(teams, matches),
    })


@app.route('/api/leaderboards')
def api_leaderboards():
    """Top teams of every tournament that has teams and at least one completed match."""
    leaderboards = []
    for tid in list_tournament_ids():
        tournament_dir = os.path.join(_tournaments_dir(), tid)
        teams = load_teams(tournament_dir)
        matches = load_matches(tournament_dir)
        if not teams or not any(m.is_completed for m in matches):
            continue
        leaderboards.append({
            'tournament': _tournament_summary(load_tournament(tournament_dir)),
            'standings': calculate_leaderboard(teams, matches)[:LEADERBOARD_TOP_N],
            'totalTeams': len(teams),
        })
    return jsonify({'leaderboards': leaderboards, 'count': len(leaderboards)})


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/score', methods=['POST'])
def api_update_score(tournament_id, match_id):
    """API endpoint to record a score and/or status for a match."""
    tournament_dir = _tournament_dir(tournament_id)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Expected a JSON object'}), 400

    score, error = _parse_score(data.get('score'))
    if error:
        return jsonify({'error': error}), 400

    status = data.get('status')
    if status is not None:
        if status not in [s.value for s in MatchStatus]:
            return jsonify({'error': 'Invalid status'}), 400
        status = MatchStatus(status)

    if score is None and status is None:
        return jsonify({'error': 'Nothing to update: send a score and/or a status'}), 400

    with _tournament_lock(tournament_dir):
        records = _load_yaml(os.path.join(tournament_dir, MATCHES_FILE), [])
        record = _find_match_record(records, match_id) if isinstance(records, list) else None
        if record is None:
            return jsonify({'error': 'Match not found'}), 404
        match = Match.from_dict(record)
        apply_score_update(match, score, status)
        _write_result(record, match)
        save_match_records(tournament_dir, records)

    app.logger.info(f'Match {match_id} in {tournament_id} updated: status={match.status.value}')
    return jsonify({'success': True, 'match': match.to_dict()})


def _get_data_file_mtimes(tournament_dir: str) -> dict:
    """Return modification times for the files a tournament view depends on.

    Returns:
        Dictionary mapping file path to its mtime (float), or 0.0 if missing.
    """
    files = [os.path.join(tournament_dir, n) for n in (TOURNAMENT_FILE, TEAMS_FILE, MATCHES_FILE)]
    return {f: os.path.getmtime(f) if os.path.exists(f) else 0.0 for f in files}


@app.route('/api/tournaments/<tournament_id>/live-stream')
def api_live_stream(tournament_id):
    """Server-Sent Events stream that notifies clients when tournament data changes."""
    tournament_dir = _tournament_dir(tournament_id)

    def generate():
        """Yield SSE events, checking data file mtimes every LIVE_POLL_SECONDS."""
        yield "event: connected\ndata: ok\n\n"

        last_mtimes = _get_data_file_mtimes(tournament_dir)
        since_heartbeat = 0.0

        while True:
            time.sleep(LIVE_POLL_SECONDS)
            since_heartbeat += LIVE_POLL_SECONDS

            current_mtimes = _get_data_file_mtimes(tournament_dir)
            if current_mtimes != last_mtimes:
                last_mtimes = current_mtimes
                yield f"event: update\ndata: {time.time()}\n\n"

            if since_heartbeat >= LIVE_HEARTBEAT_SECONDS:
                since_heartbeat = 0.0
                yield ": heartbeat\n\n"

    return Response(
        stream_with_context(generate()),
        mimetype='text/event-stream',
        headers={
            'Cache-Control': 'no-cache',
            'X-Accel-Buffering': 'no',
        },
    )


if __name__ == '__main__':
    app.run(debug=True)
