from trainer.crud.profile import (
    create_profile,
    get_profile,
    list_profiles,
    update_profile,
    update_profile_settings,
    is_admin,
    delete_profile,
    set_active_profile,
    get_active_profile
)
from trainer.crud.lesson import (
    list_lessons,
    get_lesson,
    extract_examples,
    save_lesson,
    import_lesson_file,
    import_lessons_dir,
    delete_lesson
)
from trainer.crud.analytics import (
    load_analytics,
    save_analytics,
    add_error,
    remove_error,
    save_lesson_progress,
    get_lesson_progress,
    get_most_problematic_sentences,
    create_analytics_backup,
    import_analytics_file
)
from trainer.crud.spaced_repetition import (
    record_completion,
    mark_completed_and_maybe_hide,
    toggle_visibility,
    get_lessons_due_for_review,
    refresh_statuses,
    get_repetition_info,
    get_hidden_lessons,
    get_all_repetition_info
)
from trainer.crud.priority_sentences import (
    select_priority_sentences,
    save_priority_sentences,
    get_priority_sentences,
    get_all_priority_sentences
)
from trainer.crud.review import sentences_due_for_review

__all__ = [
    "create_profile",
    "get_profile",
    "list_profiles",
    "update_profile",
    "update_profile_settings",
    "is_admin",
    "delete_profile",
    "set_active_profile",
    "get_active_profile",
    "list_lessons",
    "get_lesson",
    "extract_examples",
    "save_lesson",
    "import_lesson_file",
    "import_lessons_dir",
    "delete_lesson",
    "load_analytics",
    "save_analytics",
    "add_error",
    "remove_error",
    "save_lesson_progress",
    "get_lesson_progress",
    "get_most_problematic_sentences",
    "create_analytics_backup",
    "import_analytics_file",
    "record_completion",
    "mark_completed_and_maybe_hide",
    "toggle_visibility",
    "get_lessons_due_for_review",
    "refresh_statuses",
    "get_repetition_info",
    "get_hidden_lessons",
    "get_all_repetition_info",
    "select_priority_sentences",
    "save_priority_sentences",
    "get_priority_sentences",
    "get_all_priority_sentences",
    "sentences_due_for_review",
]
