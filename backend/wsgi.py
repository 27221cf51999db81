from shiftkeeper import create_app

app = create_app()
