"""Bundled fallback question bank."""

from furlong.models import TriviaQuestion


def _q(num: int, text: str, options: tuple[str, str, str, str], correct: int, category: str) -> TriviaQuestion:
    return TriviaQuestion(
        id=f"static-{num}",
        text=text,
        options=options,
        correct_index=correct,
        category=category,
    )


STATIC_QUESTIONS: tuple[TriviaQuestion, ...] = (
    _q(1, "What is the capital of France?", ("London", "Berlin", "Paris", "Madrid"), 2, "Geography"),
    _q(2, "Which planet is known as the Red Planet?", ("Venus", "Mars", "Jupiter", "Saturn"), 1, "Science"),
    _q(3, "What year did World War II end?", ("1943", "1944", "1945", "1946"), 2, "History"),
    _q(4, "Who painted the Mona Lisa?", ("Van Gogh", "Da Vinci", "Picasso", "Rembrandt"), 1, "Art"),
    _q(5, "What is the largest ocean on Earth?", ("Atlantic", "Indian", "Arctic", "Pacific"), 3, "Geography"),
    _q(6, "How many continents are there?", ("5", "6", "7", "8"), 2, "Geography"),
    _q(7, "What is H2O commonly known as?", ("Salt", "Sugar", "Water", "Air"), 2, "Science"),
    _q(8, "Which animal is known as the King of the Jungle?", ("Tiger", "Lion", "Elephant", "Bear"), 1, "Animals"),
    _q(9, "What is the smallest country in the world?", ("Monaco", "Vatican City", "Malta", "San Marino"), 1, "Geography"),
    _q(10, "How many legs does a spider have?", ("6", "8", "10", "12"), 1, "Animals"),
    _q(11, "What color is a ruby?", ("Blue", "Green", "Red", "Yellow"), 2, "General"),
    _q(12, "Which sport uses a shuttlecock?", ("Tennis", "Badminton", "Squash", "Table Tennis"), 1, "Sports"),
)
