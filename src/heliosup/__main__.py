from heliosup.cli import main_apple

main_apple()
