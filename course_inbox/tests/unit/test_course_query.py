"""
Test mailbox query construction for a course.
"""
from course_inbox.core.email.course_query import build_course_email_query, extract_significant_keywords
from course_inbox.core.email.models import CourseInfo


class TestExtractSignificantKeywords:

    def test_skips_short_words_and_stop_words(self):
        assert extract_significant_keywords("Statistics with Python") == ["Statistics", "Python"]

    def test_at_most_three(self):
        assert extract_significant_keywords("Advanced Topics Modern Distributed Systems") == [
            "Advanced", "Topics", "Modern"
        ]

    def test_empty_name(self):
        assert extract_significant_keywords("") == []


class TestBuildCourseEmailQuery:

    def test_full_course(self):
        course = CourseInfo(name="Intro to Machine Learning", code="CS 229", email="prof@uni.edu")

        assert build_course_email_query(course) == (
            '(from:prof@uni.edu OR "CS 229" OR "CS229" OR "Intro" OR "Machine" OR "Learning")'
        )

    def test_code_without_space_not_duplicated(self):
        assert build_course_email_query(CourseInfo(code="MATH221")) == '("MATH221")'

    def test_email_only(self):
        assert build_course_email_query(CourseInfo(email="prof@uni.edu")) == "(from:prof@uni.edu)"

    def test_nothing_known(self):
        assert build_course_email_query(CourseInfo()) == ""
