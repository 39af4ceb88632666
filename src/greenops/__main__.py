from greenops.cli import main

main()
