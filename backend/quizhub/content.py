"""Static site content served by the home endpoint."""

HOME_FEATURES = [
    {
        'id': 'jvq:quiz-recap',
        'icon': 'recap',
        'title': 'Quiz Recap',
        'desc': 'Thursday & Saturday recaps. Scan highlights and check answers after the stream.',
        'href': '/quiz-recap',
    },
    {
        'id': 'jvq:jvq-leaderboards',
        'icon': 'trophy',
        'title': 'JVQ Leaderboards',
        'desc': 'View scores and climb the leaderboards.',
        'href': '/lb-select/jvpqlb',
    },
    {
        'id': 'jvq:add-your-score',
        'icon': 'controller',
        'title': 'Add Your Score',
        'desc': 'View scores and climb the leaderboards.',
        'href': '/profile?tab=add-score',
        'signed_in_only': True,
        'badge': {'text': 'Signed-in', 'variant': 'brand'},
    },
    {
        'id': 'jvq:quizhub-live',
        'icon': 'live',
        'title': 'QuizHub Live',
        'desc': 'Join a pub and play the virtual quiz live with friends.',
        'href': '/quizzes',
    },
    {
        'id': 'jdq:listen',
        'icon': 'headphones',
        'title': 'Listen',
        'desc': 'Listen to the daily quiz podcast and log your score.',
        'href': '/jdq',
    },
    {
        'id': 'jdq:jdq-leaderboards',
        'icon': 'trophy',
        'title': 'JDQ Leaderboards',
        'desc': 'View scores and climb the leaderboards.',
        'href': '/lb-select/jdqlb',
    },
]


def home_features(signed_in: bool):
    cards = []
    for card in HOME_FEATURES:
        if card.get('signed_in_only') and not signed_in:
            continue
        cards.append({
            'id': card['id'],
            'icon': card['icon'],
            'title': card['title'],
            'desc': card['desc'],
            'href': card['href'],
            'signed_in_only': bool(card.get('signed_in_only')),
            'badge': card.get('badge'),
        })
    return cards
