"""
Project management: goals, milestones, milestone tasks and project statistics
"""

import logging
import threading
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

from mycroft.core.exceptions import ProjectNotFoundError
from mycroft.core.models import (
    Activity, EngineEvent, EventType, Milestone, MilestoneTask,
    Project, ProjectGoal, ProjectStatus
)
from mycroft.database.manager import Store
from mycroft.utils.datetime_utils import DAY_NAMES, Clock, days_between
from mycroft.utils.validators import validate_enum_value

logger = logging.getLogger(__name__)

PROJECTS_KEY = "projects"
DEADLINE_WINDOW_DAYS = 30

PROJECT_COLORS = [
    "#007ACC", "#28A745", "#DC3545", "#FFC107", "#6F42C1",
    "#FD7E14", "#20C997", "#E83E8C", "#17A2B8", "#6C757D"
]

_UPDATABLE_FIELDS = {'name', 'description', 'color', 'status', 'repositories'}


class ProjectService:
    """CRUD over projects kept under a single store key"""

    def __init__(self, store: Store, clock: Clock, notifier=None):
        self.store = store
        self.clock = clock
        self.notifier = notifier
        self._lock = threading.RLock()

    # ===== STORAGE =====

    def _load(self) -> List[Project]:
        return [Project.from_dict(p) for p in self.store.load(PROJECTS_KEY) or []]

    def _save(self, projects: List[Project]) -> None:
        self.store.save(PROJECTS_KEY, [p.to_dict() for p in projects])

    def _find(self, projects: List[Project], project_id: str) -> Project:
        for project in projects:
            if project.id == project_id:
                return project
        raise ProjectNotFoundError(project_id)

    def _notify(self, event_type: EventType, payload: Dict[str, Any]) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(EngineEvent(type=event_type, payload=payload, created_at=self.clock.now()))
        except Exception as e:
            logger.error(f"❌ Notification sink failed for {event_type.value}: {e}")

    # ===== PROJECTS =====

    def create_project(self, name: str, description: str = "",
                       repositories: Optional[List[str]] = None) -> Project:
        with self._lock:
            projects = self._load()
            now = self.clock.now()
            project = Project(
                name=name,
                description=description,
                color=PROJECT_COLORS[len(projects) % len(PROJECT_COLORS)],
                repositories=list(repositories or []),
                created_at=now,
                updated_at=now
            )
            projects.append(project)
            self._save(projects)
            logger.info(f"📁 Project created: {project.name}")
            return project

    def get_projects(self) -> List[Project]:
        with self._lock:
            return self._load()

    def get_project(self, project_id: str) -> Optional[Project]:
        with self._lock:
            return next((p for p in self._load() if p.id == project_id), None)

    def get_active_projects(self) -> List[Project]:
        return [p for p in self.get_projects() if p.status == ProjectStatus.ACTIVE.value]

    def update_project(self, project_id: str, **updates) -> Project:
        unknown = set(updates) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        with self._lock:
            projects = self._load()
            project = self._find(projects, project_id)
            if 'status' in updates:
                updates['status'] = validate_enum_value(updates['status'], ProjectStatus, "status")
            for key, value in updates.items():
                setattr(project, key, value)
            project.updated_at = self.clock.now()
            self._save(projects)
            return project

    def delete_project(self, project_id: str) -> bool:
        with self._lock:
            projects = self._load()
            remaining = [p for p in projects if p.id != project_id]
            if len(remaining) == len(projects):
                return False
            self._save(remaining)
            logger.info(f"🗑️ Project deleted: {project_id}")
            return True

    def archive_project(self, project_id: str) -> Project:
        return self.update_project(project_id, status=ProjectStatus.ARCHIVED)

    # ===== GOALS =====

    def add_goal(self, project_id: str, title: str, target_value: float, unit: str = "activities",
                 description: str = "", deadline: Optional[str] = None) -> ProjectGoal:
        with self._lock:
            projects = self._load()
            project = self._find(projects, project_id)
            goal = ProjectGoal(
                title=title,
                description=description,
                target_value=target_value,
                unit=unit,
                deadline=deadline,
                created_at=self.clock.now()
            )
            project.goals.append(goal)
            project.updated_at = self.clock.now()
            self._save(projects)
            return goal

    def update_goal_progress(self, project_id: str, goal_id: str, current_value: float) -> bool:
        with self._lock:
            projects = self._load()
            project = self._find(projects, project_id)
            goal = project.get_goal(goal_id)
            if goal is None:
                return False

            just_completed = goal.update_progress(current_value)
            project.updated_at = self.clock.now()
            self._save(projects)

        if just_completed:
            logger.info(f"🎯 Goal completed: {goal.title}")
            self._notify(EventType.GOAL_COMPLETED, {
                'goal_title': goal.title,
                'project_name': project.name,
                'project_id': project.id
            })
        return True

    # ===== MILESTONES =====

    def add_milestone(self, project_id: str, title: str, description: str = "",
                      due_date: Optional[str] = None, priority: str = "medium") -> Milestone:
        with self._lock:
            projects = self._load()
            project = self._find(projects, project_id)
            milestone = Milestone(title=title, description=description, due_date=due_date, priority=priority)
            project.milestones.append(milestone)
            project.updated_at = self.clock.now()
            self._save(projects)
            return milestone

    def add_milestone_task(self, project_id: str, milestone_id: str, title: str) -> Optional[MilestoneTask]:
        with self._lock:
            projects = self._load()
            project = self._find(projects, project_id)
            milestone = project.get_milestone(milestone_id)
            if milestone is None:
                return None

            task = MilestoneTask(title=title)
            milestone.tasks.append(task)
            milestone.recompute_progress(self.clock.now())
            project.updated_at = self.clock.now()
            self._save(projects)
            return task

    def complete_milestone_task(self, project_id: str, milestone_id: str, task_id: str) -> bool:
        with self._lock:
            projects = self._load()
            project = self._find(projects, project_id)
            milestone = project.get_milestone(milestone_id)
            if milestone is None:
                return False
            task = next((t for t in milestone.tasks if t.id == task_id), None)
            if task is None:
                return False

            now = self.clock.now()
            if not task.is_completed:
                task.is_completed = True
                task.completed_at = now
            milestone_done = milestone.recompute_progress(now)
            project.updated_at = now
            self._save(projects)

        if milestone_done:
            logger.info(f"🏁 Milestone completed: {milestone.title}")
            self._notify(EventType.MILESTONE_COMPLETED, {
                'milestone_title': milestone.title,
                'project_name': project.name,
                'project_id': project.id
            })
        return True

    # ===== STATISTICS =====

    def get_project_stats(self, project_id: str, activities: Sequence[Activity]) -> Dict[str, Any]:
        project = self.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)

        project_activities = [a for a in activities if a.project_id == project_id]
        total_time = sum(a.duration_minutes or 0 for a in project_activities)
        timed = [a.duration_minutes for a in project_activities if a.duration_minutes]

        day_counts = Counter(DAY_NAMES[a.activity_date.weekday()] for a in project_activities)
        most_active_day = "No data"
        best = 0
        for day in DAY_NAMES:
            if day_counts[day] > best:
                most_active_day, best = day, day_counts[day]

        return {
            'total_activities': len(project_activities),
            'total_time': total_time,
            'completed_goals': sum(1 for g in project.goals if g.is_completed),
            'completed_milestones': sum(1 for m in project.milestones if m.completed_at is not None),
            'average_session_length': round(sum(timed) / len(timed), 1) if timed else 0.0,
            'most_active_day': most_active_day,
            'category_breakdown': dict(Counter(a.category for a in project_activities))
        }

    def calculate_project_completion(self, project_id: str) -> float:
        """Mean milestone progress; 0 without milestones or for unknown projects"""
        project = self.get_project(project_id)
        if project is None or not project.milestones:
            return 0.0
        return sum(m.progress for m in project.milestones) / len(project.milestones)

    def get_upcoming_deadlines(self) -> List[Dict[str, Any]]:
        today = self.clock.now().date()
        deadlines = []

        for project in self.get_active_projects():
            for goal in project.goals:
                if goal.deadline and not goal.is_completed:
                    deadlines.append(('goal', project, goal.title, goal.deadline))
            for milestone in project.milestones:
                if milestone.due_date and milestone.completed_at is None:
                    deadlines.append(('milestone', project, milestone.title, milestone.due_date))

        upcoming = []
        for kind, project, title, deadline in deadlines:
            days_until = days_between(today, deadline)
            if 0 <= days_until <= DEADLINE_WINDOW_DAYS:
                upcoming.append({
                    'type': kind,
                    'project_name': project.name,
                    'title': title,
                    'deadline': deadline,
                    'days_until': days_until
                })

        return sorted(upcoming, key=lambda d: d['days_until'])
