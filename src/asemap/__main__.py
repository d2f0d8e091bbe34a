from asemap.cli import main

main()
