from flask import Blueprint, jsonify, request

from quizhub.services.scores import standings
from quizhub.services.scores.windows import ordinal, parse_date

leaderboards = Blueprint('leaderboards', __name__)


def _render(board):
    highlight = standings.find_highlight(board['rows'], request.args.get('username'))
    if highlight:
        highlight['ordinal'] = ordinal(highlight['position'])
    board['highlight'] = highlight
    for key in ('date_from', 'date_to'):
        if board.get(key) is not None:
            board[key] = board[key].isoformat()
    return jsonify(board)


@leaderboards.route('/jdq/<string:view>', methods=['GET'])
def jdq_leaderboard(view):
    on_date = request.args.get('date')
    board = standings.jdq_view(view, parse_date(on_date, 'date') if on_date else None)
    return _render(board)


@leaderboards.route('/jvq/<string:view>', methods=['GET'])
def jvq_leaderboard(view):
    return _render(standings.jvq_view(view))
