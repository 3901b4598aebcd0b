from design_chat.services.prompt_builder import DESIGN_SYSTEM_PROMPT, NO_DESCRIPTION, PromptBuilder


def test_first_turn_carries_task_context():
    prompt = PromptBuilder().build_prompt(
        "How should we paginate?",
        can_resume=False,
        task_title="Add CSV export",
        task_description="Export report tables",
    )

    assert prompt == (
        f"{DESIGN_SYSTEM_PROMPT}\n\n"
        "Task Title: Add CSV export\n"
        "Task Description: Export report tables\n\n"
        "User: How should we paginate?"
    )


def test_missing_description_uses_placeholder():
    prompt = PromptBuilder().build_prompt("hi", can_resume=False, task_title="T", task_description=None)
    assert f"Task Description: {NO_DESCRIPTION}\n" in prompt

    prompt = PromptBuilder().build_prompt("hi", can_resume=False, task_title="T", task_description="")
    assert f"Task Description: {NO_DESCRIPTION}\n" in prompt


def test_resumed_turn_is_the_message_alone():
    prompt = PromptBuilder().build_prompt(
        "And the error handling?",
        can_resume=True,
        task_title="Add CSV export",
        task_description="Export report tables",
    )
    assert prompt == "And the error handling?"


def test_custom_system_prompt():
    prompt = PromptBuilder(system_prompt="Be brief.").build_prompt("x", can_resume=False, task_title="T")
    assert prompt.startswith("Be brief.\n\nTask Title: T\n")
