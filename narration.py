"""Text for the browser's speech synthesis, read off the board's commands."""

from commands import command_type


def _walk(commands):
    for command in commands:
        yield command
        if command_type(command) == "group" and isinstance(command.get("children"), list):
            yield from _walk(command["children"])


def speakable_latex(latex):
    return latex.replace("\\", " ")


def narration_text(commands):
    """Plain text first, then every equation, each as its own sentence."""
    parts = []
    equations = []
    for command in _walk(commands):
        tag = command_type(command)
        if tag is None:
            continue
        text = command.get("text")
        if tag == "text" and isinstance(text, str) and text.strip():
            parts.append(text + ". ")
        elif tag == "equation":
            latex = command.get("latex") or command.get("text")
            if isinstance(latex, str) and latex.strip():
                equations.append("Equation: " + speakable_latex(latex) + ". ")
    return "".join(parts + equations)
