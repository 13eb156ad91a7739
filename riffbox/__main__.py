from riffbox.main import main_cli

main_cli()
