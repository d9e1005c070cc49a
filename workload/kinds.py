"""
The three managed entity kinds and their first-run sample data.

Sample collections are written to the store the first time a module is
activated against an empty (or unreadable) key.
"""

from __future__ import annotations

import copy
from typing import Any

from workload.model import EntityKind


STAFF = EntityKind(
    name="staff",
    label="Staff member",
    plural="staff members",
    storage_key="staffMembers",
    secondary_field="staffId",
    prefix="STAFF",
    required=("name", "email"),
    search_fields=("name", "email"),
    filter_fields=("department",),
    title_field="name",
    added_message="Staff member added successfully!",
    updated_message="Staff record updated",
    deleted_message="Record deleted",
)

COURSE = EntityKind(
    name="course",
    label="Course",
    plural="courses",
    storage_key="courses",
    secondary_field="courseId",
    prefix="COURSE",
    required=("courseCode", "courseName", "requiredQualification"),
    search_fields=("courseCode", "courseName"),
    filter_fields=("semester", "department"),
    title_field="courseName",
    added_message="Course added successfully!",
    updated_message="Course updated successfully!",
    deleted_message="Course deleted successfully!",
)

TASK = EntityKind(
    name="task",
    label="Task",
    plural="tasks",
    storage_key="tasks",
    secondary_field="taskId",
    prefix="T",
    required=("taskName", "description"),
    search_fields=("taskName", "description"),
    filter_fields=("category", "department"),
    title_field="taskName",
    added_message="Task added successfully!",
    updated_message="Task updated successfully!",
    deleted_message="Task deleted successfully!",
)

KINDS: dict[str, EntityKind] = {k.name: k for k in (STAFF, COURSE, TASK)}

DEFAULT_DEPARTMENTS = ["Computer Science", "Mathematics", "Physics", "Chemistry", "Biology"]

TASK_CATEGORIES = ["general", "academic", "administrative", "research", "teaching", "assessment"]


def get_kind(name: str) -> EntityKind:
    """
    Look up a kind by name ("staff", "course", "task"), case-insensitive.
    Raises KeyError for unknown names.
    """
    key = (name or "").strip().lower()
    if key not in KINDS:
        raise KeyError(f"Unknown entity kind: {name!r} (expected one of {', '.join(KINDS)})")
    return KINDS[key]


_STAFF_SAMPLES: list[dict[str, Any]] = [
    {
        "id": 1,
        "name": "Dr. John Smith",
        "email": "john.smith@university.edu",
        "department": "Computer Science",
        "position": "Professor",
        "teachingHours": 12,
        "researchHours": 6,
        "totalHours": 18,
    },
    {
        "id": 2,
        "name": "Dr. Sarah Johnson",
        "email": "sarah.johnson@university.edu",
        "department": "Mathematics",
        "position": "Associate Professor",
        "teachingHours": 10,
        "researchHours": 5,
        "totalHours": 15,
    },
    {
        "id": 3,
        "name": "Dr. Michael Williams",
        "email": "michael.williams@university.edu",
        "department": "Physics",
        "position": "Professor",
        "teachingHours": 15,
        "researchHours": 5,
        "totalHours": 20,
    },
    {
        "id": 4,
        "name": "Dr. Emily Brown",
        "email": "emily.brown@university.edu",
        "department": "Computer Science",
        "position": "Assistant Professor",
        "teachingHours": 8,
        "researchHours": 4,
        "totalHours": 12,
    },
    {
        "id": 5,
        "name": "Dr. David Davis",
        "email": "david.davis@university.edu",
        "department": "Mathematics",
        "position": "Associate Professor",
        "teachingHours": 11,
        "researchHours": 5,
        "totalHours": 16,
    },
]

_COURSE_SAMPLES: list[dict[str, Any]] = [
    {
        "id": 1,
        "courseCode": "CS101",
        "courseName": "Introduction to Computer Science",
        "department": "Computer Science",
        "semester": "Semester 1",
        "credits": 3,
        "contactHours": 3,
        "description": "Fundamental concepts of computer science",
    },
    {
        "id": 2,
        "courseCode": "CS201",
        "courseName": "Data Structures",
        "department": "Computer Science",
        "semester": "Semester 2",
        "credits": 4,
        "contactHours": 4,
        "description": "Introduction to data structures and algorithms",
    },
    {
        "id": 3,
        "courseCode": "MATH101",
        "courseName": "Calculus I",
        "department": "Mathematics",
        "semester": "Semester 1",
        "credits": 4,
        "contactHours": 4,
        "description": "Differential and integral calculus",
    },
    {
        "id": 4,
        "courseCode": "PHYS101",
        "courseName": "Physics I",
        "department": "Physics",
        "semester": "Semester 1",
        "credits": 4,
        "contactHours": 4,
        "description": "Mechanics and thermodynamics",
    },
    {
        "id": 5,
        "courseCode": "CS301",
        "courseName": "Database Systems",
        "department": "Computer Science",
        "semester": "Semester 2",
        "credits": 3,
        "contactHours": 3,
        "description": "Database design and management",
    },
    {
        "id": 6,
        "courseCode": "MATH201",
        "courseName": "Linear Algebra",
        "department": "Mathematics",
        "semester": "Semester 2",
        "credits": 3,
        "contactHours": 3,
        "description": "Vector spaces and linear transformations",
    },
    {
        "id": 7,
        "courseCode": "CS401",
        "courseName": "Software Engineering",
        "department": "Computer Science",
        "semester": "Semester 1",
        "credits": 3,
        "contactHours": 3,
        "description": "Software development methodologies",
    },
    {
        "id": 8,
        "courseCode": "CHEM101",
        "courseName": "General Chemistry",
        "department": "Chemistry",
        "semester": "Semester 1",
        "credits": 4,
        "contactHours": 4,
        "description": "Fundamental principles of chemistry",
    },
]

_TASK_SAMPLES: list[dict[str, Any]] = [
    {
        "id": 1,
        "taskId": "T001",
        "taskName": "Review Course Materials",
        "description": "Review and update course materials for CS101",
        "category": "academic",
        "hoursNeeded": "40",
        "noOfStaff": "2",
        "staffQualificationCriteria": "PhD in Computer Science, 5+ years teaching experience",
        "department": "Computer Science",
        "programme": "Bachelor of Science",
        "module": "Module 1",
    },
    {
        "id": 2,
        "taskId": "T002",
        "taskName": "Prepare Exam Questions",
        "description": "Create final exam questions for MATH101",
        "category": "assessment",
        "hoursNeeded": "20",
        "noOfStaff": "1",
        "staffQualificationCriteria": "PhD in Mathematics",
        "department": "Mathematics",
        "programme": "Bachelor of Science",
        "module": "Module 2",
    },
    {
        "id": 3,
        "taskId": "T003",
        "taskName": "Update Syllabus",
        "description": "Update syllabus for Spring 2024 semester",
        "category": "administrative",
        "hoursNeeded": "15",
        "noOfStaff": "1",
        "staffQualificationCriteria": "Senior lecturer or above",
        "department": "Computer Science",
        "programme": "Master of Science",
        "module": "Module 3",
    },
]

_SAMPLES = {"staff": _STAFF_SAMPLES, "course": _COURSE_SAMPLES, "task": _TASK_SAMPLES}


def sample_records(kind: EntityKind) -> list[dict[str, Any]]:
    """Return a fresh copy of the sample collection for ``kind``."""
    return copy.deepcopy(_SAMPLES[kind.name])
