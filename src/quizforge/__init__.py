"""Turn study documents into auto-graded quizzes."""
