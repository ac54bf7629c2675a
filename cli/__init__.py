# cli - click 명령어와 콘솔 출력
