"""StudyAI: study assistant gateway and client."""
