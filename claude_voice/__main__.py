from claude_voice.cli import run

run()
