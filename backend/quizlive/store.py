from quizlive.services.sessions import QuizLookup


class SqlQuizLookup(QuizLookup):
    """Reads quiz definitions from the authoring database.

    Runs inside its own app context so it works from socket handlers and
    background tasks alike.
    """

    def __init__(self, app):
        self.app = app

    def find_by_code(self, code):
        from quizlive.models import Quiz
        with self.app.app_context():
            quiz = Quiz.query.filter_by(code=code.upper()).first()
            return quiz.to_definition() if quiz else None
