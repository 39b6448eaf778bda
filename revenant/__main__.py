from revenant.cli import main

main()
