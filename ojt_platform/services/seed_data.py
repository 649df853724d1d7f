"""
Default question bank, installed by POST /api/assessments/init.
"""

DEFAULT_ASSESSMENT_TITLE = "IT Skills Assessment"

DEFAULT_ASSESSMENT = {
    "title": DEFAULT_ASSESSMENT_TITLE,
    "description": "General assessment to evaluate IT skills across various domains",
    "time_limit": 30,
    "passing_score": 60,
    "category": "general",
    "questions": [
        {
            "question": "Which of the following is a JavaScript framework?",
            "type": "multiple-choice",
            "options": ["React", "HTML", "CSS", "MySQL"],
            "correct_answer": "React",
            "difficulty": "easy",
            "category": "webDevelopment",
            "points": 1,
            "explanation": "React is a JavaScript library for building user interfaces.",
        },
        {
            "question": "What does SQL stand for?",
            "type": "multiple-choice",
            "options": [
                "Structured Query Language",
                "Simple Query Language",
                "Standard Query Language",
                "System Query Language",
            ],
            "correct_answer": "Structured Query Language",
            "difficulty": "easy",
            "category": "database",
            "points": 1,
            "explanation": "SQL is the language used to query and manage relational databases.",
        },
        {
            "question": "Which protocol is used for secure web communication?",
            "type": "multiple-choice",
            "options": ["HTTP", "HTTPS", "FTP", "SMTP"],
            "correct_answer": "HTTPS",
            "difficulty": "easy",
            "category": "networking",
            "points": 1,
            "explanation": "HTTPS wraps HTTP in TLS encryption.",
        },
        {
            "question": "What is the time complexity of binary search?",
            "type": "multiple-choice",
            "options": ["O(n)", "O(log n)", "O(n^2)", "O(1)"],
            "correct_answer": "O(log n)",
            "difficulty": "medium",
            "category": "problemSolving",
            "points": 2,
            "explanation": "Each step halves the remaining search space.",
        },
        {
            "question": "Which of the following is a server-side programming language?",
            "type": "multiple-choice",
            "options": ["JavaScript", "HTML", "CSS", "Python"],
            "correct_answer": "Python",
            "difficulty": "easy",
            "category": "programming",
            "points": 1,
            "explanation": "Python runs on the server; HTML and CSS are markup and styling.",
        },
    ],
}
