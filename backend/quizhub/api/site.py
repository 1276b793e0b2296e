from flask import Blueprint, jsonify
from flask_login import current_user

from quizhub.content import home_features
from quizhub.models import LiveQuiz
from quizhub.services.live_quiz.quizzes import phase
from quizhub.services.scores.standings import daily_rows
from quizhub.services.scores.windows import quiz_now

site = Blueprint('site', __name__)


@site.route('/home', methods=['GET'])
def home():
    today = quiz_now().date()
    quizzes = LiveQuiz.query.filter(LiveQuiz.status != 'finished').order_by(LiveQuiz.start_time, LiveQuiz.id).all()
    return jsonify({
        'features': home_features(current_user.is_authenticated),
        'jdq_today': {'date': today.isoformat(), 'top': daily_rows('JDQ', today)[:3]},
        'quizzes': [dict(q.to_dict(), phase=phase(q)) for q in quizzes],
    })
