from worqhat_wizard.pipeline import main

main()
