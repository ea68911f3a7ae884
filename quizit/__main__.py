"""
Entry point for running QuizIt as a module.

Usage:
    python -m quizit test 1 --count 20
    python -m quizit stats 1
    python -m quizit --help
"""
from quizit.delivery.cli import main

if __name__ == "__main__":
    main()
