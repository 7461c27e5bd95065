# Command-line interface (console output) elements
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import HTML

ALERT_COLORS = {"red": "ansired", "yellow": "ansiyellow", "clear": "ansigreen"}


def print_title():
    """Prints the application title."""
    print("  _____ _       _     _   _ _            ")
    print(" / ____(_)     | |   | | | (_)           ")
    print("| (___  _  __ _| |__ | |_| |_ _ __   ___ ")
    print(" \\___ \\| |/ _` | '_ \\| __| | | '_ \\ / _ \\")
    print(" ____) | | (_| | | | | |_| | | | | |  __/")
    print("|_____/|_|\\__, |_| |_|\\__|_|_|_| |_|\\___|")
    print("           __/ |                         ")
    print("          |___/                          ")
    print("-----------------------------------------")


def format_alert(summary):
    """One-line primary alert for the nearest obstacle."""
    if not summary.has_obstacle:
        return "Path clear"
    return f"[{summary.color_hint.upper()}] {summary.alert_text}"


def alert_markup(summary):
    """format_alert coloured by the summary's color hint."""
    tag = ALERT_COLORS[summary.color_hint]
    return HTML(f"<{tag}>{{}}</{tag}>").format(format_alert(summary))


def format_prediction(prediction):
    r = prediction.rect
    return (f"{prediction.label:<14} {prediction.semantic_label:<24} "
            f"box=({r.x:.2f},{r.y:.2f},{r.width:.2f},{r.height:.2f})")


def format_status(status):
    line = f"state={status.state} fps={status.fps:.1f}"
    if status.error:
        line += f" error={status.error}"
    if status.advisory:
        line += f" advisory={status.advisory}"
    return line


def print_report(orchestrator, verbose=False):
    """Prints the current alert, plus every tracked prediction when verbose."""
    print_formatted_text(alert_markup(orchestrator.obstacle()))
    status = orchestrator.status()
    if status.state != "running":
        print(f"  ! {format_status(status)}")
    if verbose:
        for prediction in orchestrator.predictions():
            print(f"  - {format_prediction(prediction)}")
