from webbundle.cli import main

main()
