from ripple.cli.app import main

main()
